"""Canvas server - FastAPI remote store for workflows, folders and run history."""
