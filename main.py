import datetime
import threading
import uuid

from flask import Flask, request, jsonify, send_file
import os
import logging

from backends.escl_backend import EsclError, InputSource, document_format_for, is_multi_document
from scanner_manager import ScannerManager

logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO"))

logger = logging.getLogger(__name__)

app = Flask(__name__)

# Configuration
UPLOAD_FOLDER = os.getenv('SCAN_FOLDER', 'scans')
ALLOWED_EXTENSIONS = {'pdf', 'jpg', 'jpeg', 'png'}
app.config['UPLOAD_FOLDER'] = UPLOAD_FOLDER

# Ensure upload folder exists
os.makedirs(UPLOAD_FOLDER, exist_ok=True)

# Global scanner manager instance
sm = ScannerManager()

# Store scan status for async operations
scan_status = {}


@app.route('/api/health', methods=['GET'])
def health():
    """Health check with the configured scanner endpoint"""
    return jsonify({
        'success': True,
        'status': 'ok',
        'escl_url': sm.url
    })


@app.route('/api/scan', methods=['POST'])
def start_network_scan():
    """Start network eSCL scanning process"""
    data = request.get_json(silent=True) or {}
    escl_url = data.get('escl_url') or sm.url
    source = data.get('source', InputSource.FEEDER.value)
    resolution = str(data.get('resolution', 300))
    format_type = data.get('format', 'pdf')
    color_mode = data.get('color_mode', 'RGB24')

    for field, value in (('escl_url', escl_url), ('color_mode', color_mode)):
        if not isinstance(value, str):
            return jsonify({
                'success': False,
                'error': f'Invalid {field}: {value!r}'
            }), 400

    if source not in [s.value for s in InputSource]:
        return jsonify({
            'success': False,
            'error': f'Invalid source: {source}'
        }), 400

    if not resolution.isdigit() or int(resolution) <= 0:
        return jsonify({
            'success': False,
            'error': f'Invalid resolution: {resolution}'
        }), 400

    if format_type not in ALLOWED_EXTENSIONS:
        return jsonify({
            'success': False,
            'error': f'Unsupported format: {format_type}'
        }), 400

    # Generate unique filename
    scan_id = str(uuid.uuid4())
    timestamp = datetime.datetime.now().strftime("%Y%m%d_%H%M%S")
    filename = f"scan_{timestamp}_{scan_id}.{format_type}"
    filepath = os.path.join(app.config['UPLOAD_FOLDER'], filename)

    multi_document = is_multi_document(source, document_format_for(format_type))

    # Initialize scan status
    scan_status[scan_id] = {
        'status': 'scanning',
        'progress': 0,
        'filenames': [],
        'multi_document': multi_document,
        'error': None
    }

    # Start network scan in background thread
    thread = threading.Thread(
        target=perform_network_scan,
        args=(scan_id, escl_url, filepath),
        kwargs={
            'source': source,
            'resolution': resolution,
            'fmt': format_type,
            'color_mode': color_mode,
            'multi_document': multi_document
        },
        daemon=True
    )
    thread.start()

    return jsonify({
        'success': True,
        'scan_id': scan_id,
        'message': 'Network scan started'
    })


@app.route('/api/scan/status/<scan_id>', methods=['GET'])
def get_scan_status(scan_id):
    """Get status of a scan operation"""
    if scan_id not in scan_status:
        return jsonify({
            'success': False,
            'error': 'Scan ID not found'
        }), 404

    return jsonify({
        'success': True,
        'scan_status': scan_status[scan_id]
    })


@app.route('/api/download/<filename>')
def download_scan(filename):
    """Download a scanned file"""
    filepath = os.path.join(app.config['UPLOAD_FOLDER'], os.path.basename(filename))
    if os.path.exists(filepath):
        return send_file(os.path.abspath(filepath), as_attachment=True)
    return jsonify({
        'success': False,
        'error': 'File not found'
    }), 404


@app.route('/api/scans', methods=['GET'])
def list_scans():
    """List all available scans"""
    scans = []
    folder = app.config['UPLOAD_FOLDER']
    for filename in os.listdir(folder):
        if filename.rsplit('.', 1)[-1].lower() in ALLOWED_EXTENSIONS:
            filepath = os.path.join(folder, filename)
            stat = os.stat(filepath)
            scans.append({
                'filename': filename,
                'size': stat.st_size,
                'modified': datetime.datetime.fromtimestamp(stat.st_mtime).isoformat()
            })

    # Newest first
    scans.sort(key=lambda x: x['modified'], reverse=True)

    return jsonify({
        'success': True,
        'scans': scans
    })


def perform_network_scan(scan_id, escl_url, filepath, **scan_options):
    """Perform the actual network scan operation in background thread"""
    status = scan_status[scan_id]
    try:
        status['progress'] = 25
        print(f"🌐 Starting network scan from: {escl_url}")

        result = sm.scan_network_escl(escl_url, filepath, **scan_options)

        print(f"✅ Network scan completed: {len(result)} file(s)")
        status['status'] = 'completed'
        status['progress'] = 100
        status['filenames'] = [os.path.basename(path) for path in result]

    except EsclError as e:
        print(f"❌ Network scan failed: {e}")
        logger.error("eSCL %s error: %s", e.phase, e)
        status['status'] = 'error'
        status['error'] = str(e)
        status['error_type'] = type(e).__name__
        status['phase'] = e.phase
        status['status_code'] = e.status_code

    except OSError as e:
        print(f"❌ Could not write scan: {e}")
        logger.error("Writing scan %s failed: %s", filepath, e)
        status['status'] = 'error'
        status['error'] = str(e)
        status['error_type'] = type(e).__name__

    except Exception as e:
        print(f"❌ Network scan failed: {e}")
        logger.exception("Network scan %s failed", scan_id)
        status['status'] = 'error'
        status['error'] = str(e)
        status['error_type'] = type(e).__name__


if __name__ == '__main__':
    print("🚀 Starting eSCL Scanner Application...")
    print(f"📡 Scanner endpoint: {sm.url}")
    print("🌐 API will be available at http://localhost:5000")
    app.run(debug=False, host='0.0.0.0', port=5000)
