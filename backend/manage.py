#!/usr/bin/env python
"""
Django management utility.
"""

import os
import sys
import logging

logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
logger = logging.getLogger(__name__)


def main():
    os.environ.setdefault("DJANGO_SETTINGS_MODULE", "contractsign.settings")

    try:
        from django.core.management import execute_from_command_line
    except ImportError as exc:
        logger.error("Django Import Error: %s", str(exc))
        raise

    execute_from_command_line(sys.argv)


if __name__ == "__main__":
    main()
