#!/usr/bin/env python3
"""Command-line runner: python run.py [restore_backup|backup_and_upload]"""
from hostbackup.cli import main

if __name__ == '__main__':
    main()
