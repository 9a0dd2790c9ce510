"""Allow ``python -m proctop``."""

import sys

from proctop.cli import main

sys.exit(main())
