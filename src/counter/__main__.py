import sys

from .handler import main


sys.exit(main())
