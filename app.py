import os, uuid, time, shutil, logging
from flask import Flask, request, jsonify, send_from_directory, render_template_string, abort, url_for
from werkzeug.utils import secure_filename
import converter as cv
import boxed_text
from errors import EmptyDocumentError, UnsupportedTemplateError

logger = logging.getLogger(__name__)

app = Flask(__name__)
app.config['MAX_CONTENT_LENGTH'] = 20 * 1024 * 1024  # 20MB max

UPLOAD_FOLDER = os.environ.get('JATS_UPLOAD_DIR', '/tmp/jats_uploads')
OUTPUT_FOLDER = os.environ.get('JATS_OUTPUT_DIR', '/tmp/jats_outputs')
FILE_MAX_AGE_MINUTES = int(os.environ.get('JATS_FILE_MAX_AGE', 15))

ALLOWED_EXTENSIONS = {'docx'}
DOWNLOADS = {'xml': '{name}.xml', 'html': '{name}.html', 'images': '{name}_images.zip'}

def allowed_file(filename):
    return '.' in filename and filename.rsplit('.', 1)[1].lower() in ALLOWED_EXTENSIONS

def clean_old_files(folder, max_age_minutes):
    """Remove files and job folders older than max_age_minutes."""
    if not os.path.isdir(folder): return
    now = time.time()
    for entry in os.listdir(folder):
        path = os.path.join(folder, entry)
        try:
            if (now - os.path.getmtime(path)) / 60 <= max_age_minutes: continue
            if os.path.isdir(path): shutil.rmtree(path)
            else: os.remove(path)
            logger.info('Removed stale %s', path)
        except OSError:
            logger.warning('Could not remove %s', path, exc_info=True)

# ============================================================
# WEB UI
# ============================================================
HTML = '''<!DOCTYPE html>
<html lang="es">
<head>
<meta charset="UTF-8">
<meta name="viewport" content="width=device-width,initial-scale=1">
<title>DOCX → JATS XML</title>
<style>
*{margin:0;padding:0;box-sizing:border-box}
body{font-family:sans-serif;background:#0a0e1a;color:#e2e8f0;min-height:100vh}
.header{border-bottom:1px solid rgba(99,179,237,.12);padding:20px 32px}
.header h1{font-size:18px;color:#63b3ed}
.header p{font-size:12px;color:#718096;margin-top:2px}
.card{max-width:560px;margin:32px auto;background:#111827;border:1px solid rgba(99,179,237,.12);border-radius:14px;padding:24px}
.field{display:flex;flex-direction:column;gap:6px;margin:12px 0}
.field label{font-size:11px;font-weight:600;color:#718096}
.field input,.field select{background:#1a2235;border:1px solid rgba(99,179,237,.12);border-radius:8px;padding:9px 12px;color:#e2e8f0}
.btn{background:#3182ce;color:#fff;border:none;padding:13px;border-radius:10px;font-weight:700;cursor:pointer;width:100%;margin-top:8px}
.btn:disabled{opacity:.5;cursor:not-allowed}
#result a{display:inline-block;margin:12px 8px 0 0;color:#68d391}
#error{color:#fc8181;font-size:12px;margin-top:12px}
</style>
</head>
<body>
<div class="header">
  <h1>DOCX → JATS XML</h1>
  <p>EASI: Ingeniería y Ciencias Aplicadas en la Industria · JATS 1.3</p>
</div>
<div class="card">
  <div class="field"><label>Manuscrito (.docx)</label><input type="file" id="file" accept=".docx"></div>
  <div class="field"><label>Boxed Text</label>
    <select id="policy"><option value="strict">strict</option><option value="lenient">lenient</option></select>
  </div>
  <button class="btn" id="btn" onclick="doConvert()">Convertir</button>
  <div id="error"></div>
  <div id="result"></div>
</div>
<script>
async function doConvert() {
  const f = document.getElementById('file').files[0];
  const err = document.getElementById('error'), res = document.getElementById('result');
  err.textContent = ''; res.innerHTML = '';
  if (!f) { err.textContent = 'Seleccione un archivo .docx'; return; }
  const fd = new FormData();
  fd.append('file', f);
  fd.append('boxed_policy', document.getElementById('policy').value);
  document.getElementById('btn').disabled = true;
  try {
    const resp = await fetch('/api/convert', { method: 'POST', body: fd });
    const data = await resp.json();
    if (!resp.ok) throw new Error(data.error || 'Conversion failed');
    for (const [kind, url] of Object.entries(data.downloads))
      res.innerHTML += `<a href="${url}">⬇️ ${kind}</a>`;
  } catch (e) { err.textContent = '❌ ' + e.message; }
  document.getElementById('btn').disabled = false;
}
</script>
</body>
</html>'''

@app.route('/')
def index():
    return render_template_string(HTML)

# ============================================================
# API ENDPOINTS
# ============================================================
@app.route('/api/convert', methods=['POST'])
def api_convert():
    if 'file' not in request.files:
        return jsonify({'error': 'No file uploaded. Use field name: file'}), 400
    f = request.files['file']
    if not f.filename or not allowed_file(f.filename):
        return jsonify({'error': 'Only .docx files allowed'}), 400
    policy = request.form.get('boxed_policy', boxed_text.STRICT)
    if policy not in boxed_text.POLICIES:
        return jsonify({'error': f'boxed_policy must be one of {", ".join(boxed_text.POLICIES)}'}), 400

    for folder in (UPLOAD_FOLDER, OUTPUT_FOLDER):
        os.makedirs(folder, exist_ok=True)
        clean_old_files(folder, FILE_MAX_AGE_MINUTES)

    job = uuid.uuid4().hex[:12]
    fname = secure_filename(f.filename) or 'manuscript.docx'
    name = os.path.splitext(fname)[0]
    input_path = os.path.join(UPLOAD_FOLDER, f'{job}_{fname}')
    out_dir = os.path.join(OUTPUT_FOLDER, job)
    f.save(input_path)

    try:
        res = cv.convert_docx(input_path, out_dir,
                              template=request.form.get('template', cv.DEFAULT_TEMPLATE),
                              boxed_policy=policy)
        os.replace(res['xml_path'], os.path.join(out_dir, DOWNLOADS['xml'].format(name=name)))
        os.replace(res['html_path'], os.path.join(out_dir, DOWNLOADS['html'].format(name=name)))
        kinds = ['xml', 'html']
        if res['media_dir'] and cv.zip_images(res['media_dir'], os.path.join(out_dir, DOWNLOADS['images'].format(name=name))):
            kinds.append('images')
        with open(os.path.join(out_dir, 'name'), 'w', encoding='utf-8') as nf:
            nf.write(name)
        return jsonify({
            'message': 'File processed successfully.',
            'job': job,
            'downloads': {k: url_for('download', job=job, kind=k) for k in kinds},
            'stats': res['stats'],
        })
    except UnsupportedTemplateError as e:
        return jsonify({'error': str(e)}), 400
    except EmptyDocumentError as e:
        return jsonify({'error': str(e)}), 422
    except Exception as e:
        logger.exception('Conversion of %s failed', fname)
        return jsonify({'error': str(e)}), 500
    finally:
        if os.path.exists(input_path):
            os.remove(input_path)

@app.route('/download/<job>/<kind>')
def download(job, kind):
    if kind not in DOWNLOADS or secure_filename(job) != job:
        abort(404)
    out_dir = os.path.join(OUTPUT_FOLDER, job)
    try:
        with open(os.path.join(out_dir, 'name'), encoding='utf-8') as nf:
            name = nf.read().strip()
    except OSError:
        abort(404)
    return send_from_directory(out_dir, DOWNLOADS[kind].format(name=name), as_attachment=True)

# ============================================================
# HEALTH CHECK
# ============================================================
@app.route('/health')
def health():
    return jsonify({'status': 'ok', 'version': '1.0'})

if __name__ == '__main__':
    logging.basicConfig(level=logging.INFO, format='%(asctime)s %(levelname)s %(name)s: %(message)s')
    port = int(os.environ.get('PORT', 5000))
    app.run(host='0.0.0.0', port=port, debug=False)
