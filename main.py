#!/usr/bin/env python3
"""
Main entry point for the basic IRC client
"""

from basicirc.main import run

if __name__ == "__main__":
    run()
