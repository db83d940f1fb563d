"""python -m planilla"""
import uvicorn

from planilla.config import settings

if __name__ == "__main__":
    uvicorn.run("planilla.main:app", host=settings.host, port=settings.port, log_level=settings.log_level.lower())
