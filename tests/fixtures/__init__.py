# Test fixtures for exifdate
from tests.fixtures.media_samples import (
    CORRUPT_PNG as CORRUPT_PNG,
    jpeg_bytes as jpeg_bytes,
    png_bytes as png_bytes,
    write_jpeg as write_jpeg,
    write_png as write_png,
)
from tests.fixtures.generators import (
    create_storage_layout as create_storage_layout,
    create_flat_folder as create_flat_folder,
)
