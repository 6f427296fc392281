"""
Configuration constants for the camera renamer.
"""

# --- File Type Definitions ---
# Upper-case, no leading dot. Matching is case-insensitive.
RAW_EXTS = {'RAF', 'CR2', 'NEF', 'ARW', 'ORF', 'RW2', 'PEF', 'DNG'}
IMAGE_EXTS = {'JPG', 'JPEG', 'HEIC', 'HEIF', 'PNG', 'TIFF', 'TIF', 'WEBP'}
SUPPORTED_EXTS = RAW_EXTS | IMAGE_EXTS

# RAW extension -> camera brand, used only for reporting
CAMERA_BRANDS = {
    'RAF': 'Fujifilm',
    'ARW': 'Sony',
    'NEF': 'Nikon',
    'CR2': 'Canon',
    'ORF': 'Olympus',
}
OTHER_BRAND = 'Other'

# --- Backup ---
BACKUP_PREFIX = "backup_"
BACKUP_DATE_FORMAT = "%Y%m%d_%H%M%S"
MANIFEST_NAME = "rename_manifest.json"

# --- Naming ---
EXIF_DATE_FORMAT = "%Y:%m:%d %H:%M:%S"
TIMESTAMP_FORMAT = "%Y-%m-%d_%H%M%S"
# Base used for files that carry no DateTimeOriginal
UNDATED_PLACEHOLDER = "0000-00-00_000000"
MAX_EVENT_LENGTH = 12
DEFAULT_CATEGORY = "Fam"

# --- Sidecars ---
SIDECAR_EXT = ".xmp"
SIDECAR_TITLE_PREFIX = "Original: "
DEFAULT_SIDECAR_MODE = "backup"

# --- Metadata Tool ---
EXIFTOOL_BIN = "exiftool"
EXIFREAD_DATE_TAG = 'EXIF DateTimeOriginal'
