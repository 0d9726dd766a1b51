import sys

from geolink.cli import main

sys.exit(main())
