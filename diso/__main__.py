import uvicorn

from diso.config import settings

if __name__ == "__main__":
    uvicorn.run("diso.main:app", host=settings.api_host, port=settings.api_port, log_level="info")
