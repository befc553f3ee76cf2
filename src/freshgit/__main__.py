import sys

from freshgit.main import main

sys.exit(main())
