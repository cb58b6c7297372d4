"""Entry point for touch_guard package"""

import sys

from touch_guard.main import main

if __name__ == "__main__":
    sys.exit(main())
