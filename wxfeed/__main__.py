import sys

from wxfeed.cli import main

sys.exit(main())
