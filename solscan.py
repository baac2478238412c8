#!/usr/bin/env python3
"""
SolScan v1.0 - Solana Smart Contract Auditor

Launcher for running from a source checkout.

Usage:
    python solscan.py <path-to-contract.rs or directory>
"""

import sys
from pathlib import Path

# Ensure project root is on sys.path
sys.path.insert(0, str(Path(__file__).parent.absolute()))

from cli.main import main

if __name__ == "__main__":
    sys.exit(main())
