#!/usr/bin/env python3
"""Verify a configuration file (config.example.yaml by default) before deploying it."""

import sys
from pathlib import Path

import yaml

from subscription_notifier.config.loader import validate_config_file

KNOWN_SECTIONS = ("scheduler", "notifications", "telegram", "email", "logging")


def verify_config_structure(config_file: Path = Path("config.example.yaml")) -> bool:
    """Validate the file against the config schema and print a summary."""
    if not config_file.exists():
        print(f"✗ {config_file} not found")
        return False

    if not validate_config_file(config_file):
        return False

    with open(config_file, "r", encoding="utf-8") as f:
        config = yaml.safe_load(f) or {}

    unknown = [key for key in config if key not in KNOWN_SECTIONS]
    if unknown:
        print(f"  ! Ignored sections: {', '.join(unknown)}")

    scheduler = config.get("scheduler", {})
    notifications = config.get("notifications", {})
    print(f"  - Daily check: {scheduler.get('check_time', '09:00')} {scheduler.get('timezone', 'Asia/Shanghai')}")
    print(f"  - Default language: {notifications.get('default_language', 'zh-CN')}")
    print(f"  - Default channels: {', '.join(notifications.get('default_channels', ['telegram']))}")
    return True


if __name__ == "__main__":
    path = Path(sys.argv[1]) if len(sys.argv) > 1 else Path("config.example.yaml")
    sys.exit(0 if verify_config_structure(path) else 1)
