"""Entry point for python -m dex_deployer"""

import sys

from .cli import main

sys.exit(main())
