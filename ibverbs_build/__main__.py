"""Enable running ibverbs-build as a module: python -m ibverbs_build"""

import sys

from ibverbs_build import (
    cli,
)

if __name__ == "__main__":
    # pylint: disable=no-value-for-parameter
    sys.exit(cli())
