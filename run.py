#!/usr/bin/env python3
"""Main entry point for the Whitelist Application API."""

import sys
import os

# Add src to Python path
sys.path.insert(0, os.path.join(os.path.dirname(__file__)))

from src.api.server import run_server

if __name__ == '__main__':
    print("=" * 60)
    print("Whitelist Application API - Starting Server")
    print("=" * 60)
    print("\nEndpoints:")
    print("  POST  /applications           - Submit a whitelist application")
    print("  GET   /applications           - List pending applications (admin)")
    print("  GET   /applications/<id>      - Show a pending application (admin)")
    print("  PATCH /applications/<id>      - Approve or deny an application (admin)")
    print("  GET   /applications/archive   - List decided applications (admin)")
    print("  GET   /health                 - Health check")
    print("\n" + "=" * 60)

    run_server()
