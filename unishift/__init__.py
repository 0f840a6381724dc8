"""Unishift: backend d'expédition de colis (FastAPI + Supabase + Stripe)."""
