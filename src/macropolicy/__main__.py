"""Allow ``python -m macropolicy``."""

import sys

from macropolicy.cli import main

sys.exit(main())
