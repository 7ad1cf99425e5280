import sys

from pibackup.main import main

sys.exit(main())
