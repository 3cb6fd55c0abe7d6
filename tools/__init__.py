# =============================================================================
# tools/__init__.py
# =============================================================================
# This package contains the FastMCP tool layer.
#
# ARCHITECTURAL ROLE:
#   tools/ is the "translation layer" between MCP and core/.  It:
#     1. Exposes each SolarWindsClient operation as a named tool
#     2. Parses tool arguments (ISO time strings → datetimes)
#     3. Renders records as text (formatting.py)
#     4. Turns every failure into an "Error: ..." answer
#
# WHAT TOOLS DO NOT DO:
#   - They do NOT make HTTP calls themselves (that's core/client.py)
#   - They do NOT keep state between calls
# =============================================================================
