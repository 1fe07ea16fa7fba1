"""
Loading of challenge definitions (starter code and test cases) from JSON.
"""

import json
from pathlib import Path

from .models import Challenge


def load_challenge(path: Path) -> Challenge:
    """
    Load a challenge from a JSON file.

    Raises:
        ValueError: If the file is missing, not valid JSON or lacks
                    required fields
    """
    path = Path(path)
    try:
        data = json.loads(path.read_text(encoding='utf-8'))
    except OSError as e:
        raise ValueError(f"Error reading challenge file: {e}")
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in challenge file: {e}")

    try:
        challenge = Challenge.from_dict(data)
    except (KeyError, TypeError) as e:
        raise ValueError(f"Invalid challenge: missing or malformed field {e}")

    if not challenge.entry_name.isidentifier():
        raise ValueError(f"Invalid challenge: entry_name '{challenge.entry_name}' is not an identifier")
    if not challenge.tests:
        raise ValueError("Invalid challenge: no test cases")

    return challenge
