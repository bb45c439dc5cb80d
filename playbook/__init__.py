"""
Playbook Studio - tactical play reports, playbooks and workbooks
"""

__version__ = '1.0.0'
