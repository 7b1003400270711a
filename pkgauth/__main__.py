"""Allow ``python -m pkgauth``."""

import sys

from .cli import main


sys.exit(main())
