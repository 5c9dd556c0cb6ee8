from __future__ import annotations

from garment_order_board.ui.app import main

main()
