#!/usr/bin/env python3
"""
Playbook Studio - Development Entry Point

Copyright (c) 2025 Playbook Studio. All Rights Reserved.
This software is proprietary and confidential. Unauthorized copying, modification,
distribution, or use of this software, via any medium, is strictly prohibited.
"""

from playbook.main import main

if __name__ == '__main__':
    main()
