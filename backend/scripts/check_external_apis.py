#!/usr/bin/env python3
"""
Check if the product sources (Open Food Facts, Gemini) are reachable.
Run from backend: python scripts/check_external_apis.py
Exit 0 if at least one source works; 1 if both fail or none configured.
"""
import sys
from pathlib import Path
from typing import Tuple

# Add backend to path when run as script
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

import requests
from dotenv import load_dotenv
load_dotenv(Path(__file__).resolve().parent.parent / ".env")

from foodlens.config import Settings

# Short timeout for health check
HEALTH_TIMEOUT = 8
# Nutella 400g; stable, complete record
SAMPLE_BARCODE = "3017620422003"


def check_open_food_facts(settings: Settings) -> Tuple[bool, str]:
    """Return (success, message)."""
    url = f"{settings.off_url}/api/v2/product/{SAMPLE_BARCODE}.json"
    try:
        resp = requests.get(url, headers={"User-Agent": settings.user_agent}, timeout=HEALTH_TIMEOUT)
    except requests.RequestException as e:
        return False, f"{type(e).__name__}"
    if resp.status_code != 200:
        return False, f"HTTP {resp.status_code}"
    try:
        data = resp.json()
    except ValueError:
        return False, "invalid json"
    if data.get("status") == 1:
        name = (data.get("product") or {}).get("product_name") or "?"
        return True, f"ok (sample={name})"
    return False, "sample barcode not found"


def check_model(settings: Settings) -> Tuple[bool, str]:
    """Return (success, message). Lists models; no tokens are spent."""
    if not settings.model_configured:
        return False, "no API key (set GEMINI_API_KEY)"
    try:
        resp = requests.get(
            settings.gemini_url,
            params={"key": settings.gemini_api_key},
            timeout=HEALTH_TIMEOUT,
        )
    except requests.RequestException as e:
        return False, f"{type(e).__name__}"
    if resp.status_code != 200:
        return False, f"HTTP {resp.status_code}"
    try:
        names = {m.get("name", "").split("/")[-1] for m in resp.json().get("models") or []}
    except (ValueError, AttributeError):
        return False, "invalid json"
    available = [m for m in settings.model_chain if m in names]
    if not available:
        return False, f"none of {','.join(settings.model_chain)} listed"
    return True, f"ok (models={','.join(available)})"


def main() -> int:
    settings = Settings.from_env()
    print("Checking product sources...")
    off_ok = False
    off_msg = "disabled (OPEN_FOOD_FACTS_ENABLED=false)"
    if settings.off_enabled:
        off_ok, off_msg = check_open_food_facts(settings)
    print(f"  Open Food Facts: {'OK' if off_ok else 'FAIL'} - {off_msg}")
    model_ok, model_msg = check_model(settings)
    print(f"  Gemini:          {'OK' if model_ok else 'FAIL'} - {model_msg}")
    if off_ok or model_ok:
        print("At least one source is working.")
        return 0
    print("All configured sources failed or none configured.")
    return 1


if __name__ == "__main__":
    sys.exit(main())
