"""Cultural events directory: LCSD feed import and read API."""
