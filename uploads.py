"""
Blob storage for payment proofs and images
Files are kept on local disk and shared by URL; their contents are never read here.
"""
from datetime import datetime
import os
import uuid

from flask import Blueprint, current_app, send_from_directory, url_for
from flask_login import login_required
from werkzeug.utils import secure_filename

from errors import PortalError

uploads_bp = Blueprint('uploads', __name__, url_prefix='/uploads')

ALLOWED_EXTENSIONS = {'pdf', 'png', 'jpg', 'jpeg', 'gif', 'heic', 'webp'}


def allowed_file(filename):
    """Check if file extension is allowed"""
    return '.' in filename and \
           filename.rsplit('.', 1)[1].lower() in ALLOWED_EXTENSIONS


class LocalBlobStore:
    """Saves uploads under a folder and builds shareable URLs for them"""

    def __init__(self, folder):
        self.folder = folder

    def save(self, file, prefix=''):
        """Save an uploaded file and return its storage key"""
        if not file or not file.filename:
            raise PortalError('No file uploaded.')
        if not allowed_file(file.filename):
            raise PortalError('Invalid file type. Please upload PDF, PNG, JPG, JPEG, GIF, HEIC or WEBP files.')

        extension = file.filename.rsplit('.', 1)[1].lower()
        # Timestamp plus a random suffix avoids collisions between uploads
        timestamp = datetime.now().strftime('%Y%m%d_%H%M%S')
        key = secure_filename(f'{prefix}{timestamp}_{uuid.uuid4().hex[:8]}.{extension}')

        os.makedirs(self.folder, exist_ok=True)
        file.save(os.path.join(self.folder, key))
        return key

    def delete(self, key):
        path = os.path.join(self.folder, key)
        if os.path.exists(path):
            os.remove(path)

    def url_for(self, key):
        return url_for('uploads.serve_upload', key=key, _external=True)


def get_blob_store():
    return LocalBlobStore(current_app.config['UPLOAD_FOLDER'])


@uploads_bp.route('/<path:key>')
@login_required
def serve_upload(key):
    return send_from_directory(os.path.abspath(current_app.config['UPLOAD_FOLDER']), key)
