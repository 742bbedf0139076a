"""
Constants for the stash application.
Centralizes magic numbers and naming rules for boxes, items and photos.
"""

# --------------------------------------------------------------------------------------
# Box codes
# --------------------------------------------------------------------------------------
BOX_CODE_PREFIX = "BOX-"
BOX_CODE_PATTERN = r"^BOX-(\d{3})$"   # strict auto-numbering pattern (case-insensitive)
BOX_CODE_MAX_LENGTH = 64

# --------------------------------------------------------------------------------------
# Items
# --------------------------------------------------------------------------------------
ITEM_NAME_MAX_LENGTH = 255
SEARCH_RESULT_LIMIT = 50

# --------------------------------------------------------------------------------------
# Photos
# --------------------------------------------------------------------------------------
PHOTO_DEFAULT_BUCKET = "item-photos"
PHOTO_MAX_DIMENSION = 1280         # longest side in px after resize
PHOTO_SOFT_TARGET_BYTES = 100 * 1024
PHOTO_START_QUALITY = 80
PHOTO_FALLBACK_FILENAME = "photo.jpg"

# --------------------------------------------------------------------------------------
# Cache Keys & TTL
# --------------------------------------------------------------------------------------
SCOPE_CACHE_KEY = "inventory_owner:{user_id}"
SCOPE_CACHE_TTL_DEFAULT = 60 * 60
APPCONFIG_CACHE_TTL = 300

# --------------------------------------------------------------------------------------
# Sessions
# --------------------------------------------------------------------------------------
MOVE_SESSION_KEY = "move_session"

# --------------------------------------------------------------------------------------
# API tokens
# --------------------------------------------------------------------------------------
API_TOKEN_BYTES = 32
