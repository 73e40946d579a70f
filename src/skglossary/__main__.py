"""Allow ``python -m skglossary``."""

import sys

from skglossary.main import main

sys.exit(main())
