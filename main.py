"""artifact-cli entry point.

Usage:
  python main.py push ghcr.io/my-user/my-app:1.0.0 -f ./my-app
  python main.py pull ghcr.io/my-user/my-app:1.0.0 -o ./out
  python main.py describe ghcr.io/my-user/my-app:1.0.0 -o yaml
"""

import sys

from artifact_cli.cli import main

if __name__ == "__main__":
    sys.exit(main())
