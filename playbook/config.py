"""
Configuration constants for Playbook Studio
"""
import os

# Footer shown on every document page when no footer text is configured
DEFAULT_FOOTER_TEXT = os.environ.get('DEFAULT_FOOTER_TEXT', 'Generated by Playbook Studio')

# Team name used in filenames when branding has none
DEFAULT_TEAM_NAME = os.environ.get('DEFAULT_TEAM_NAME', 'Hockey')

# Sharing service (share links and QR codes)
SHARING_SERVICE_URL = os.environ.get('SHARING_SERVICE_URL', 'http://localhost:3000/api/sharing')
SHARING_TIMEOUT_SECONDS = float(os.environ.get('SHARING_TIMEOUT_SECONDS', '10'))
SHARE_LINK_EXPIRATION_DAYS = int(os.environ.get('SHARE_LINK_EXPIRATION_DAYS', '30'))

# Request limits
MAX_PLAYS_PER_EXPORT = int(os.environ.get('MAX_PLAYS_PER_EXPORT', '500'))
MAX_BATCH_SIZE = int(os.environ.get('MAX_BATCH_SIZE', '20'))
MAX_CONTENT_LENGTH = 32 * 1024 * 1024  # 32MB, captures are sent inline

# Logging
LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
LOG_DIR = os.environ.get('LOG_DIR', os.path.join(os.path.dirname(os.path.dirname(__file__)), 'logs'))
