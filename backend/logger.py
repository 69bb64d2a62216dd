"""
Simple event logger for calibration experiments.

Appends JSON lines to `logs/events.jsonl` at the repository root. Each line is
a JSON object containing at least `timestamp` and `type` fields (e.g.
`calibration_complete`, `track_lost`). Logging is off unless the
`event_log` processing setting is enabled, and never impacts real-time
processing.
"""
import os
import json
import logging
from typing import Dict

from backend.processing_config import get_config

LOG_DIR = os.path.join(os.path.dirname(__file__), '..', 'logs')
LOG_FILE = os.path.join(LOG_DIR, 'events.jsonl')

logger = logging.getLogger(__name__)


def log_event(event: Dict, path: str = None):
    """Append event (dict) as JSON line to the log file."""
    if path is None:
        if not get_config().get("event_log"):
            return
        path = LOG_FILE
    try:
        os.makedirs(os.path.dirname(path), exist_ok=True)
        with open(path, 'a', encoding='utf-8') as f:
            f.write(json.dumps(event, ensure_ascii=False) + '\n')
    except OSError as exc:
        # Logging failure should not crash the pipeline
        logger.warning("could not write event log %s: %s", path, exc)
