"""Allow running as ``python -m fmql``."""

import sys

from fmql.cli import main

sys.exit(main())
