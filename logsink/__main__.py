import sys

from logsink.main import main

sys.exit(main())
