"""Allow running as: python -m req_intel"""

import sys

from req_intel.main import main

if __name__ == "__main__":
    sys.exit(main())
