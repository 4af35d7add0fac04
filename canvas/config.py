"""Client-side configuration, read from the environment."""

import os

from dotenv import load_dotenv

load_dotenv()  # load environment variables from .env file

# header the identity gateway sets to the signed-in user's id
USER_ID_HEADER = "X-User-Id"

API_URL = os.getenv("CANVAS_API_URL", "http://localhost:8000")
USER_ID = os.getenv("CANVAS_USER_ID")
HTTP_TIMEOUT = float(os.getenv("CANVAS_HTTP_TIMEOUT", "10.0"))

# how many past runs to fetch when a workflow's history is opened
HISTORY_PAGE_SIZE = int(os.getenv("CANVAS_HISTORY_PAGE_SIZE", "50"))
