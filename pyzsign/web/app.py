import io
import os
import sys
import shutil
import logging
import tempfile
from flask import Flask, jsonify, request, send_file, current_app
from werkzeug.utils import secure_filename

from ..config import ZsignConfig
from ..zsign import Zsign, parse_version

logger = logging.getLogger(__name__)

app = Flask(__name__)
app.config['MAX_CONTENT_LENGTH'] = 1024 * 1024 * 1024  # 1GB max file size
app.config['ZSIGN'] = None

# form field -> SignOptions field, for uploaded files
FILE_OPTIONS = {
    'pkey': 'pkey',
    'prov': 'prov',
    'cert': 'cert',
    'entitlements': 'entitlements',
    'dylib': 'dylib',
}

TEXT_OPTIONS = {
    'password': 'password',
    'bundleId': 'bundle_id',
    'bundleName': 'bundle_name',
    'bundleVersion': 'bundle_version',
}


def get_signer() -> Zsign:
    signer = current_app.config.get('ZSIGN')
    if signer is None:
        signer = Zsign(ZsignConfig.from_env())
        current_app.config['ZSIGN'] = signer
    return signer


def save_upload(upload, upload_dir, field):
    """Save an upload under its own per-field directory so sanitized names cannot collide"""
    field_dir = os.path.join(upload_dir, field)
    os.makedirs(field_dir, exist_ok=True)
    path = os.path.join(field_dir, secure_filename(upload.filename) or 'upload')
    upload.save(path)
    return path


@app.route('/')
def index():
    result = get_signer().get_version().result()
    if not result.ok:
        return jsonify({'error': str(result.error)}), 500

    try:
        version = parse_version(result.output)
    except ValueError:
        version = None
    return jsonify({'zsign': result.output.strip(), 'version': version})


@app.route('/api/sign', methods=['POST'])
def sign_ipa():
    ipa_file = request.files.get('ipa')
    if not ipa_file or not request.files.get('pkey'):
        return jsonify({'error': 'Missing required files'}), 400

    zip_level = request.form.get('zipLevel')
    if zip_level:
        try:
            zip_level = int(zip_level)
        except ValueError:
            return jsonify({'error': f'Invalid zipLevel: {zip_level}'}), 400
    else:
        zip_level = None

    upload_dir = tempfile.mkdtemp()
    try:
        options = {'zip_level': zip_level}
        for field, option in FILE_OPTIONS.items():
            upload = request.files.get(field)
            if upload:
                options[option] = save_upload(upload, upload_dir, field)
        for field, option in TEXT_OPTIONS.items():
            options[option] = request.form.get(field) or None
        options['weak'] = request.form.get('weakDylib') == 'true'

        ipa_name = secure_filename(ipa_file.filename) or 'app.ipa'
        ipa_path = save_upload(ipa_file, upload_dir, 'ipa')
        options['output'] = os.path.join(upload_dir, 'signed_' + ipa_name)

        logger.info(f"Signing uploaded IPA: {ipa_name}")
        result = get_signer().sign(ipa_path, options).result()
        if not result.ok:
            logger.error(f"Signing failed: {str(result.error)}")
            return jsonify({
                'error': str(result.error),
                'output': getattr(result.error, 'stderr', None) or getattr(result.error, 'stdout', None)
            }), 500

        if not os.path.exists(options['output']):
            return jsonify({'error': 'zsign did not produce a signed IPA', 'output': result.output}), 500

        # Read into memory so the temp directory can go away before the response is sent
        with open(options['output'], 'rb') as f:
            data = io.BytesIO(f.read())

        return send_file(
            data,
            mimetype='application/octet-stream',
            as_attachment=True,
            download_name='signed_' + ipa_name
        )

    finally:
        shutil.rmtree(upload_dir, ignore_errors=True)


if __name__ == '__main__':
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[logging.StreamHandler(sys.stdout)]
    )
    app.run(debug=True, port=5000)
