#!/usr/bin/env python3
"""
Start the Redash Slack bot.

Usage:
    export SLACK_BOT_TOKEN="xoxb-..."
    export SLACK_APP_TOKEN="xapp-..."        # Socket Mode
    # or: export SLACK_SIGNING_SECRET="..."  # HTTP mode on SLACK_PORT
    export REDASH_HOST="https://redash.example.com"
    export REDASH_API_KEY="..."
    python scripts/run_slackbot.py
"""

import sys
from pathlib import Path

# Ensure project root is on sys.path when executed as a script.
PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from redashbot.slack.bot import main


if __name__ == "__main__":
    main()
