import os
import uuid
from urllib.parse import urlparse
from flask import current_app
from markupsafe import Markup
from PIL import Image
import bleach
from foodshare.config import Config

ALLOWED_EXTENSIONS = Config.ALLOWED_EXTENSIONS

def get_locale():
    """Language selector function for Babel - returns locale string"""
    from flask import has_request_context, session

    supported = Config.BABEL_SUPPORTED_LOCALES
    if has_request_context() and session.get('language') in supported:
        return session['language']
    return Config.BABEL_DEFAULT_LOCALE

def allowed_file(filename):
    """Check if file extension is allowed"""
    return '.' in filename and filename.rsplit('.', 1)[1].lower() in ALLOWED_EXTENSIONS

def is_absolute_url(value):
    """True for http(s) URLs, which are used verbatim instead of being resolved via storage"""
    if not value:
        return False
    parsed = urlparse(value)
    return parsed.scheme in ('http', 'https') and bool(parsed.netloc)

def is_storage_key(value):
    return bool(value) and not is_absolute_url(value)

def new_storage_key(prefix, filename):
    """Opaque, collision-free key; the original filename only contributes its extension"""
    ext = filename.rsplit('.', 1)[1].lower() if '.' in filename else 'jpg'
    return f'{prefix}/{uuid.uuid4().hex}.{ext}'

def optimize_image(file_path):
    """Optimize uploaded images in place"""
    try:
        img = Image.open(file_path)
        # Convert to RGB if necessary
        if img.mode in ('RGBA', 'LA', 'P'):
            img = img.convert('RGBA')
            rgb_img = Image.new('RGB', img.size, (255, 255, 255))
            rgb_img.paste(img, mask=img.split()[-1])
            img = rgb_img
        elif img.mode != 'RGB':
            img = img.convert('RGB')

        # Resize if too large
        max_size = (1200, 800)
        img.thumbnail(max_size, Image.Resampling.LANCZOS)

        img.save(file_path, 'JPEG', quality=85, optimize=True)
        return True
    except Exception as e:
        current_app.logger.warning(f'Error optimizing image {file_path}: {e}')
        return False

def store_upload(file, prefix):
    """
    Save an uploaded file to the configured storage and return its key.

    The file is written to the upload folder first so it can be optimized;
    remote providers then receive the optimized copy.
    """
    from werkzeug.utils import secure_filename
    from foodshare.storage import get_storage
    from foodshare.errors import BackendError, BackendReason

    filename = secure_filename(file.filename or 'upload.jpg')
    key = new_storage_key(prefix, 'image.jpg')
    tmp_dir = os.path.join(current_app.config['UPLOAD_FOLDER'], 'tmp')
    os.makedirs(tmp_dir, exist_ok=True)
    tmp_path = os.path.join(tmp_dir, f'{uuid.uuid4().hex}_{filename}')
    file.save(tmp_path)
    try:
        if not optimize_image(tmp_path):
            # Not an image Pillow can read; keep the original bytes and extension
            key = new_storage_key(prefix, filename)
        get_storage().save(key, tmp_path)
        current_app.logger.info(f'Upload stored under key {key}')
        return key
    except Exception as e:
        current_app.logger.error(f'Error storing upload {filename}: {e}', exc_info=True)
        raise BackendError(BackendReason.STORAGE) from e
    finally:
        if os.path.exists(tmp_path):
            os.remove(tmp_path)

def get_image_url(image_url):
    """
    Displayable URL for a donation or avatar image.
    Absolute URLs pass through, storage keys are resolved by the storage provider,
    anything else falls back to the placeholder image.
    """
    from foodshare.storage import get_storage

    default_image = current_app.config.get('DEFAULT_DONATION_IMAGE')
    if not image_url:
        return default_image
    if is_absolute_url(image_url):
        return image_url

    try:
        return get_storage().url_for(image_url)
    except Exception as e:
        current_app.logger.warning(f'get_image_url: could not resolve key {image_url}: {e}')
        return default_image

def sanitize_html(text):
    """Sanitize user input to prevent XSS"""
    if text is None:
        return None
    allowed_tags = ['p', 'br', 'strong', 'em', 'u', 'a']
    allowed_attributes = {'a': ['href', 'title']}
    return bleach.clean(text, tags=allowed_tags, attributes=allowed_attributes, strip=True)

def sanitize_text(text):
    """Strip all markup from single-line fields"""
    if text is None:
        return None
    return Markup(text).striptags()

def discard_upload(key):
    """Best-effort removal of a stored upload that nothing references any more"""
    from foodshare.storage import get_storage

    if not is_storage_key(key):
        return False
    try:
        get_storage().remove(key)
    except Exception as e:
        current_app.logger.warning(f'Orphaned storage object {key}: {e}')
        return False
    return True
