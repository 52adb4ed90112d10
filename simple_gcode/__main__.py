import sys

from simple_gcode.cli import main

sys.exit(main())
