import logging

import uvicorn
from dotenv import load_dotenv

# boto3 reads credentials from the process environment, not from Settings
if not load_dotenv():
    logging.getLogger(__name__).warning("No .env file found")

from bucket_proxy.core.config import get_settings  # noqa: E402

settings = get_settings()

if __name__ == "__main__":
    uvicorn.run(
        "bucket_proxy.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )
