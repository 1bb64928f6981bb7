#!/usr/bin/env python3
"""
Development server runner for the video sharing API.
"""

import os

import uvicorn
from dotenv import load_dotenv

if __name__ == "__main__":
    load_dotenv()

    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", "8000"))

    print("🚀 Starting VidShare API server...")
    print(f"🔧 API docs (DEBUG only): http://localhost:{port}/api/docs")
    print(f"❤️  Health check: http://localhost:{port}/health")
    print("\n" + "="*50)

    uvicorn.run(
        "vidshare.web.app.main:app",
        host=host,
        port=port,
        log_level=os.getenv("LOG_LEVEL", "info").lower(),
    )
