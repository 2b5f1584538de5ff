"""Image bundle processing package.

This package turns an uploaded bundle of images (loose files or a zip
archive) into a zip of resized webp variants. It contains the multipart
decoder, the working-area storage helpers, the Pillow based resize
operation, the variant generator and the request orchestrator used by the
HTTP entry points in ``main.py``. See individual modules for details.
"""
