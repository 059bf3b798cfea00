"""Allow running as: python -m maturity_engine"""

from maturity_engine.main import run, serve
from maturity_engine.persistence.demo_data import DEMO_PROGRAM_ID
import sys

if __name__ == "__main__":
    if "--serve" in sys.argv:
        serve()
    else:
        program_arg = int(sys.argv[1]) if len(sys.argv) > 1 else DEMO_PROGRAM_ID
        run(program_arg)
