#!/usr/bin/env python3
"""
Upsell Engine - Main Entry Point
Rules-driven upsell recommendations served over FastAPI
"""

import uvicorn
from config.app import settings


def main():
    """Main function to run the FastAPI application"""
    uvicorn.run(
        "app.main:app",
        host=settings.API_HOST,
        port=settings.API_PORT,
        reload=settings.DEBUG
    )


if __name__ == "__main__":
    main()
