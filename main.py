#!/usr/bin/env python3
"""
Core Banking Adapter - Main Entry Point
The actual FastAPI app is in services/core_banking/corebank/main.py
"""

import sys
import os
import subprocess


def main():
    """Main entry point for deployment"""
    print("Starting Core Banking Adapter...")

    # Change to the service directory so the corebank package is importable
    service_dir = os.path.join(os.path.dirname(os.path.abspath(__file__)), 'services', 'core_banking')
    os.chdir(service_dir)

    # Start the FastAPI server
    cmd = [
        sys.executable, '-m', 'uvicorn',
        'corebank.main:app',
        '--host', '0.0.0.0',
        '--port', os.getenv('PORT', '8080')
    ]

    print(f"Running: {' '.join(cmd)}")
    subprocess.run(cmd)


if __name__ == '__main__':
    main()
