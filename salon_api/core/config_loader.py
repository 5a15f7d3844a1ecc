import json
import os
from functools import lru_cache
from typing import Dict, Any, Optional
from salon_api.core.logger import logger

CONFIG_PATH = os.getenv("SALON_CONFIG_PATH", "data/salon_config.json")

DAY_NAMES = ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]

@lru_cache(maxsize=1)
def load_salon_config() -> Dict[str, Any]:
    """
    Loads salon configuration (business info, hours, notification toggles) from JSON file.
    Raises FileNotFoundError if config is missing.
    Returns: Dict containing config.
    """
    if not os.path.exists(CONFIG_PATH):
        logger.critical(f"❌ Configuration file '{CONFIG_PATH}' not found! The application cannot start.")
        raise FileNotFoundError(f"Configuration file not found at {CONFIG_PATH}")

    try:
        with open(CONFIG_PATH, 'r', encoding='utf-8') as f:
            config = json.load(f)
            logger.info(f"✅ Configuration loaded for: {config.get('company_name', 'Unknown')}")
            return config
    except json.JSONDecodeError as e:
        logger.critical(f"❌ Invalid JSON in salon configuration: {e}")
        raise ValueError(f"Invalid JSON in config file: {e}")

def get_business_hours(config: Dict[str, Any], weekday: int) -> Optional[Dict[str, str]]:
    """
    Returns {'start': 'HH:MM', 'end': 'HH:MM'} for a weekday (0 = monday) or None if closed.
    """
    hours = config.get("business_hours", {})
    return hours.get(DAY_NAMES[weekday])

def get_break(config: Dict[str, Any]) -> Optional[Dict[str, str]]:
    return config.get("break")
