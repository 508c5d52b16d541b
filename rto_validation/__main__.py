"""Allow running as: python -m rto_validation"""

from rto_validation.main import serve
import sys

if __name__ == "__main__":
    if "--serve" in sys.argv:
        serve()
    else:
        print("Usage: python -m rto_validation --serve")
