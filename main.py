#!/usr/bin/env python3
"""
Main entry point for the Community Portal
"""
import os

from app import create_app
from database import init_database

app = create_app(os.environ.get('PORTAL_ENV', 'production'))

if __name__ == '__main__':
    port = int(os.environ.get('PORT', 8080))

    init_database(app)

    print("🏛️ Starting Community Portal...")
    print(f"📡 Running on port {port}")

    # Run the app
    app.run(host='0.0.0.0', port=port, debug=False)
