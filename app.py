import uvicorn

from relay.config import get_settings
from relay.main import configure_logging, create_app

# --- CONFIGURATION ---
settings = get_settings()
configure_logging(settings.log_level)

app = create_app(settings)

if __name__ == '__main__':
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())
