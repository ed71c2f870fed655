import sys

from docxmerge.cli import main

sys.exit(main())
