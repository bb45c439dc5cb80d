#!/usr/bin/env python3
"""
WSGI Entry Point for Production Deployment
Use with: gunicorn wsgi:app
"""

import os
import sys

# Add project root to path
project_root = os.path.dirname(os.path.abspath(__file__))
sys.path.insert(0, project_root)

os.environ.setdefault('FLASK_ENV', 'production')

from playbook.main import create_app

app = create_app()
