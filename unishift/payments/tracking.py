"""
Numéros de suivi: préfixe 2 lettres + 8 derniers chiffres de l'horodatage (ms) + suffixe aléatoire 00-99.
Identifiant d'affichage uniquement: les collisions restent possibles (pas une clé primaire).
"""
import random
import re
import time
from typing import Optional

from unishift.config import TRACKING_PREFIX

TRACKING_PATTERN = re.compile(r"^[A-Z]{2}\d{8}\d{2}$")

def generate_tracking_number(now_ms: Optional[int] = None, suffix: Optional[int] = None) -> str:
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    if suffix is None:
        suffix = random.randint(0, 99)
    return f"{TRACKING_PREFIX}{now_ms % 100_000_000:08d}{suffix % 100:02d}"

def is_tracking_number(value: str) -> bool:
    return bool(TRACKING_PATTERN.match(value or ""))
