#!/usr/bin/env python3
"""
Run script for the flight training scheduler backend
"""
import uvicorn

from flight_scheduler.config.settings import settings
from flight_scheduler.main import app

if __name__ == "__main__":
    uvicorn.run(app, host=settings.host, port=settings.port, reload=settings.debug)
