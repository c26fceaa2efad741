import sys

from autoheal.main import main

sys.exit(main())
