import sys

from ui_harness.cli import main

sys.exit(main())
