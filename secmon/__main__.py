import sys

from secmon.cli import main

sys.exit(main())
