"""
HTTP request logging
"""
import logging
import time

from fastapi import FastAPI, Request

logger = logging.getLogger("HTTP")


def register_request_logging(app: FastAPI):

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start = time.perf_counter()
        path = request.url.path
        client = request.client.host if request.client else "-"
        logger.info(f"{request.method} {path} - {client} {request.headers.get('user-agent', '')}")

        try:
            response = await call_next(request)
        except Exception:
            duration = int((time.perf_counter() - start) * 1000)
            logger.error(f"{request.method} {path} 500 - {duration}ms")
            raise

        duration = int((time.perf_counter() - start) * 1000)
        logger.info(f"{request.method} {path} {response.status_code} - {duration}ms")
        return response
