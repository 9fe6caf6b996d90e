"""Production entry point for Autovision using uvicorn workers"""

import os
from pathlib import Path

import uvicorn
from dotenv import load_dotenv

env_path = Path(__file__).parent / ".env"
if env_path.exists():
    load_dotenv(env_path)

if __name__ == "__main__":
    # Production configuration from environment
    PORT = int(os.getenv("PORT", "8001"))
    HOST = os.getenv("HOST", "127.0.0.1")
    ENVIRONMENT = os.getenv("ENVIRONMENT", "production").lower()
    WORKERS = int(os.getenv("WORKERS", "2"))

    print(f"Starting Autovision in {ENVIRONMENT} mode...")
    print(f"Host: {HOST}, Port: {PORT}, Workers: {WORKERS}")

    uvicorn.run(
        "autovision_web.main:create_app",
        factory=True,
        host=HOST,
        port=PORT,
        workers=WORKERS if ENVIRONMENT == "production" else 1,
        log_level="info",
        access_log=True,
    )
