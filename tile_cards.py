#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Tile a card image across print sheets and write a PDF.
"""

import sys

# local repo modules
import card_tiler.cli


if __name__ == "__main__":
	sys.exit(card_tiler.cli.main())
