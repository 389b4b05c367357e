# =======================================================================================
# campus_access/__main__.py - `python -m campus_access`
# =======================================================================================
import uvicorn
from .config import config

if __name__ == "__main__":
    uvicorn.run("campus_access.main:app", host=config.API_HOST, port=config.API_PORT)
