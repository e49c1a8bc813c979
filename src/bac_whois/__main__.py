import sys

from bac_whois.cli import main

sys.exit(main())
