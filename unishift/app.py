# module unishift.app
from unishift.app_setup.factory import create_app

# App globale
app = create_app()
