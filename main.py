#!/usr/bin/env python3
"""Log Sender: run from a checkout with `python main.py [config]`."""

from logsender.main import main

if __name__ == "__main__":
    main()
