"""
aiohttp transport for the hedge fund service.
"""
