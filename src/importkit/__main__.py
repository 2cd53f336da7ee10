"""Allow ``python -m importkit``."""

import sys

from importkit.cli import main

sys.exit(main())
