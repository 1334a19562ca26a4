"""``python -m scripts [seed]``: load the Taskroom demo room.

Seeding is the only command; it is also the default.
"""

import asyncio
import sys

from scripts.seed import _run_seed

COMMANDS = {"seed": _run_seed}

command = sys.argv[1] if len(sys.argv) > 1 else "seed"
if command not in COMMANDS:
    sys.exit(f"Unknown command {command!r}; expected one of: {', '.join(COMMANDS)}")
asyncio.run(COMMANDS[command]())
