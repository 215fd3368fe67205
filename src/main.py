import os
import sys
import traceback
from datetime import date
from io import BytesIO
from werkzeug.utils import secure_filename

# Root modules live one level up
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from flask import Flask, request, jsonify, send_file
from flask_cors import CORS

from bonus_config import ALLOWED_EXTENSIONS, FISCAL_START_YEAR, MAX_UPLOAD_MB, UPLOAD_FOLDER
from bonus_errors import BonusProcessingError, MissingInputError
from bonus_pipeline import BonusProcessingPipeline
from bonus_report_writer import BonusReportWriter

XLSX_MIMETYPE = 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'

# Upload field -> pipeline argument
UPLOAD_FIELDS = {
    'staff': 'staff',
    'worker': 'worker',
    'dueVoucher': 'due_voucher',
    'loanDeduction': 'loan',
    'actualPercentage': 'percentage',
    'hrComparison': 'hr',
}

app = Flask(__name__)
app.config['MAX_CONTENT_LENGTH'] = MAX_UPLOAD_MB * 1024 * 1024
app.config['UPLOAD_FOLDER'] = UPLOAD_FOLDER

# Enable CORS for all routes
CORS(app)

os.makedirs(UPLOAD_FOLDER, exist_ok=True)

writer = BonusReportWriter()


def allowed_file(filename):
    return '.' in filename and filename.rsplit('.', 1)[1].lower() in ALLOWED_EXTENSIONS


def save_uploads():
    """Save every provided upload; returns ({pipeline arg: path}, error message or None)"""
    paths = {}
    for field_name, arg in UPLOAD_FIELDS.items():
        file = request.files.get(field_name)
        if file is None or file.filename == '':
            continue
        if not allowed_file(file.filename):
            remove_uploads(paths)
            return {}, f"{field_name} must be Excel format (.xlsx or .xls)"
        filename = secure_filename(f"{field_name}_{file.filename}")
        path = os.path.join(app.config['UPLOAD_FOLDER'], filename)
        file.save(path)
        paths[arg] = path
    return paths, None


def remove_uploads(paths):
    for path in paths.values():
        try:
            os.remove(path)
        except OSError:
            app.logger.warning(f"Could not remove upload {path}")


def run_pipeline(paths):
    as_of = request.form.get('asOf')
    pipeline = BonusProcessingPipeline(as_of=date.fromisoformat(as_of) if as_of else None)
    return pipeline.run(
        paths.get('staff'),
        paths.get('worker'),
        due_voucher=paths.get('due_voucher'),
        loan=paths.get('loan'),
        percentage=paths.get('percentage'),
        hr=paths.get('hr'),
    )


def handle_request(respond, require_hr=False):
    """Save uploads, run the pipeline, hand the result to `respond`, always clean up"""
    try:
        paths, error = save_uploads()
        if error:
            return jsonify({"error": error}), 400
        try:
            if require_hr and 'hr' not in paths:
                raise MissingInputError("HR comparison file is required")
            return respond(run_pipeline(paths))
        finally:
            remove_uploads(paths)

    except MissingInputError as e:
        return jsonify(e.to_dict()), 400
    except BonusProcessingError as e:
        app.logger.error(f"Bonus processing failed: {e.reason}")
        return jsonify(e.to_dict()), 422
    except ValueError as e:
        return jsonify({"error": f"Invalid request: {str(e)}"}), 400
    except Exception as e:
        app.logger.error(f"Error processing bonus request: {str(e)}")
        app.logger.error(traceback.format_exc())
        return jsonify({"error": f"Processing failed: {str(e)}"}), 500


# API Routes
@app.route('/api/health', methods=['GET'])
def health():
    """Health check endpoint"""
    return jsonify({
        "status": "ok",
        "version": "1.0.0",
        "fiscal_start_year": FISCAL_START_YEAR,
        "endpoints": {
            "process": "/api/process",
            "generate": "/api/generate",
            "compare": "/api/compare",
            "monthly_summary": "/api/monthly-summary",
        }
    })


@app.route('/api/process', methods=['POST'])
def process_bonus():
    """Run the full bonus calculation and return it as JSON"""
    return handle_request(lambda result: jsonify({"success": True, **result.to_dict()}))


@app.route('/api/generate', methods=['POST'])
def generate_bonus_report():
    """Bonus register workbook download"""
    def respond(result):
        data = writer.create_bonus_excel(result.groups, result.salary_summaries)
        return send_file(
            BytesIO(data),
            as_attachment=True,
            download_name=f"Bonus_Register_{FISCAL_START_YEAR}-{FISCAL_START_YEAR + 1}.xlsx",
            mimetype=XLSX_MIMETYPE
        )
    return handle_request(respond)


@app.route('/api/compare', methods=['POST'])
def compare_with_hr():
    """HR comparison workbook download"""
    def respond(result):
        data = writer.create_comparison_excel(result.reconciliation, result.monthly_comparison)
        return send_file(
            BytesIO(data),
            as_attachment=True,
            download_name=f"Bonus_HR_Comparison_{FISCAL_START_YEAR}-{FISCAL_START_YEAR + 1}.xlsx",
            mimetype=XLSX_MIMETYPE
        )
    return handle_request(respond, require_hr=True)


@app.route('/api/monthly-summary', methods=['POST'])
def monthly_summary():
    """Per-cohort monthly salary totals"""
    def respond(result):
        return jsonify({
            "success": True,
            "salary_summaries": result.salary_summaries,
            "monthly_comparison": result.monthly_comparison,
        })
    return handle_request(respond)


if __name__ == '__main__':
    # Railway uses PORT, local development uses FLASK_PORT
    port = int(os.getenv('PORT', os.getenv('FLASK_PORT', 5000)))
    print(f"Starting bonus register service on port: {port}")
    app.run(host='0.0.0.0', port=port, debug=False)
