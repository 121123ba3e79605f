# dairy_ledger/constants.py
APP_NAME = "Dairy Ledger"

DATA_DIR = "data"
DB_FILE_NAME = "dairy.db"
DB_ENV_VAR = "DAIRY_LEDGER_DB"

TABLE_SCHEMA_VERSION = "schema_version"
SCHEMA_VERSION = "2"

# Home screen default; products at or below this are "low stock".
LOW_STOCK_THRESHOLD = 2
