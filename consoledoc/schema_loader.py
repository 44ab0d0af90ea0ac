from functools import lru_cache
from pathlib import Path
from typing import List
import json

_CONTRACTS_DIR = Path(__file__).resolve().parent / "contracts"


def contract_names() -> List[str]:
    """File names of every packaged document contract."""
    return sorted(p.name for p in _CONTRACTS_DIR.glob("*.json"))


@lru_cache(maxsize=None)
def load_schema(name: str) -> dict:
    """Read a packaged JSON Schema once; later calls share the parsed dict."""
    schema_path = _CONTRACTS_DIR / name
    if not schema_path.is_file():
        raise FileNotFoundError(f"Missing document contract: {schema_path}")
    return json.loads(schema_path.read_text(encoding="utf-8"))
