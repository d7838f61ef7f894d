from dotenv import load_dotenv

import os

load_dotenv()

DATABASE_URL = os.getenv("POSTGRES_URI")
SQL_ECHO = os.getenv("SQL_ECHO", "false").lower() in ("1", "true", "yes")

SECRET_KEY = os.getenv("SECRET_KEY")
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", 30))
ALGORITHM = os.getenv("ALGORITHM", "HS256")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Bounds for the `from`/`size` query parameters of paged listings.
DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 200
