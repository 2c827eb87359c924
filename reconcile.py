"""Run a reconciliation from a source checkout: python reconcile.py -w export.csv -l main.beancount"""

import sys

from wayex_ledger.cli import main

if __name__ == '__main__':
    sys.exit(main())
