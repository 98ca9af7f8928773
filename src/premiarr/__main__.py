"""Allow `python -m premiarr`."""

import sys

from premiarr.cli import main

sys.exit(main())
