#!/usr/bin/env python3
"""
ClarityTracking API Startup Script

Starts the FastAPI server with auto-reload for local development.
"""

import sys
from pathlib import Path

import uvicorn


def main():
    """Start the ClarityTracking API server."""
    print("Starting ClarityTracking API Server...")
    print("")
    print("Documentation will be available at:")
    print("   Swagger UI:  http://localhost:8000/docs")
    print("   ReDoc:       http://localhost:8000/redoc")
    print("   Admin Panel: http://localhost:8000/admin")
    print("")

    env_file = Path(".env")
    if not env_file.exists():
        print("WARNING: No .env file found!")
        print("   Copy .env.template to .env, then run: python generate_keys.py")
        print("")

    try:
        uvicorn.run(
            "clarity.main:app",
            host="0.0.0.0",
            port=8000,
            reload=True,
            reload_dirs=["clarity"],
            log_level="info"
        )
    except KeyboardInterrupt:
        print("\nShutting down ClarityTracking API server...")
    except Exception as e:
        print(f"Error starting server: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
