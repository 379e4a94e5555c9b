import copy
import json
import os
import tempfile
import threading
import uuid
from datetime import date

_DATA_DIR = os.environ.get("SHOP_DATA_DIR") or os.path.join(
    os.path.dirname(os.path.dirname(__file__)), "data"
)
_FILE_LOCK = threading.Lock()

# Suffix is the schema version of each collection
INGREDIENTS_FILE = "inventario_insumos_v2.json"
PRODUCTS_FILE = "inventario_productos_v2.json"
SALES_FILE = "inventario_ventas_v1.json"
CONFIG_FILE = "config.json"

DEFAULTS = {
    INGREDIENTS_FILE: [],
    PRODUCTS_FILE: [],
    SALES_FILE: [],
    CONFIG_FILE: {
        "preset_colors": ["#FFCDD2", "#FFF59D", "#B2EBF2"],
        "csv_delimiter": ",",
    },
}

def data_path(filename: str) -> str:
    os.makedirs(_DATA_DIR, exist_ok=True)
    return os.path.join(_DATA_DIR, filename)

def _atomic_write(path: str, data_obj):
    tmp_fd, tmp_path = tempfile.mkstemp(prefix=".tmp_", dir=_DATA_DIR)
    try:
        with os.fdopen(tmp_fd, "w", encoding="utf-8") as f:
            json.dump(data_obj, f, indent=2, ensure_ascii=False)
        os.replace(tmp_path, path)
    finally:
        if os.path.exists(tmp_path):
            os.remove(tmp_path)

def ensure_defaults():
    os.makedirs(_DATA_DIR, exist_ok=True)
    for fname, default in DEFAULTS.items():
        path = data_path(fname)
        if not os.path.exists(path):
            with _FILE_LOCK:
                _atomic_write(path, default)

def read_json(filename: str):
    """Load one collection; a missing file reads as its default."""
    path = data_path(filename)
    with _FILE_LOCK:
        if not os.path.exists(path):
            return copy.deepcopy(DEFAULTS.get(filename))
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)

def write_json(filename: str, obj):
    path = data_path(filename)
    with _FILE_LOCK:
        _atomic_write(path, obj)

def read_config() -> dict:
    cfg = copy.deepcopy(DEFAULTS[CONFIG_FILE])
    cfg.update(read_json(CONFIG_FILE) or {})
    return cfg

def new_id() -> str:
    return uuid.uuid4().hex[:12]

def coerce_id(value) -> str:
    """String form of a stored id, minting a fresh one when it is missing."""
    if value is None or value == "":
        return new_id()
    return str(value)

def today_iso() -> str:
    return date.today().isoformat()
