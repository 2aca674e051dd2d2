import uvicorn

from .config import APP_HOST, LOG_LEVEL, PORT

if __name__ == "__main__":
    uvicorn.run("teamcalendar.main:app", host=APP_HOST, port=PORT, log_level=LOG_LEVEL.lower())
