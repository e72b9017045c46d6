#!/usr/bin/env python3
"""
Startup script that runs migrations before starting the server
"""
import os
import subprocess
import sys


def run_migrations():
    """Run Alembic migrations"""
    print("🔄 Running database migrations...")
    try:
        result = subprocess.run(
            ["alembic", "upgrade", "head"],
            check=True,
            capture_output=True,
            text=True
        )
        print("✅ Migrations completed successfully")
        print(result.stdout)
        return True
    except subprocess.CalledProcessError as e:
        print("❌ Migrations failed:")
        print(e.stderr)
        return False


def start_server():
    """Start the FastAPI server"""
    print("🚀 Starting FastAPI server...")
    subprocess.run([
        "uvicorn",
        "main:app",
        "--host", "0.0.0.0",
        "--port", os.getenv("PORT", "8000")
    ])


if __name__ == "__main__":
    if not run_migrations():
        print("⚠️ Refusing to start with an out-of-date schema")
        sys.exit(1)

    start_server()
