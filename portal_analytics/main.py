"""
Portal Analytics API

ASGI entry point: ``uvicorn portal_analytics.main:app``
"""

from portal_analytics.config import get_settings
from portal_analytics.serving.api import create_api_app

settings = get_settings()

app = create_api_app(settings)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=settings.api_host, port=settings.api_port)
