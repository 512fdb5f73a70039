"""
Admin endpoints for question bank workbooks.

The usual flow is validate -> (optionally download either partition) ->
import. Import validates again server-side, so a workbook edited after the
preview is never committed unchecked.
"""

from flask import request, jsonify, current_app, send_file
from io import BytesIO
import logging

from qbank.admin import bp
from qbank.ingest import (
    BulkImporter,
    CatalogMatcher,
    IngestError,
    export_failed_rows,
    export_outcomes,
    validate_workbook,
)
from qbank.models import MongoCatalogStore, MongoQuestionStore
from qbank.utils.decorators import admin_required, role_required
from qbank.utils.validators import validate_required_fields, validate_upload, sanitize_string

logger = logging.getLogger(__name__)

XLSX_MIMETYPE = 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'


def catalog_store():
    return MongoCatalogStore()


def question_store():
    return MongoQuestionStore()


def _read_upload():
    """Return (file_content, filename, error_response)."""
    file = request.files.get('file')
    is_valid, error = validate_upload(file, current_app.config['ALLOWED_IMPORT_EXTENSIONS'])
    if not is_valid:
        return None, None, (jsonify({'error': error}), 400)
    return file.read(), file.filename, None


def _xlsx_response(content, filename):
    return send_file(
        BytesIO(content),
        mimetype=XLSX_MIMETYPE,
        as_attachment=True,
        download_name=filename
    )


@bp.route('/questions/validate', methods=['POST'])
@role_required('admin', 'maintainer')
def validate_questions():
    """Validate a workbook without writing anything."""
    try:
        file_content, filename, error_response = _read_upload()
        if error_response:
            return error_response

        logger.info(f"Validating question workbook: {filename}")
        result = validate_workbook(file_content)

        return jsonify({
            'message': f"{len(result.accepted)} valid rows, {len(result.rejected)} rejected",
            'data': result.to_dict()
        }), 200

    except IngestError as e:
        logger.warning(f"Workbook rejected: {e}")
        return jsonify({'error': str(e)}), 400
    except Exception as e:
        logger.error(f"Validation error: {str(e)}")
        return jsonify({'error': f'Validation failed: {str(e)}'}), 500


@bp.route('/questions/validate/export', methods=['POST'])
@role_required('admin', 'maintainer')
def export_validation():
    """Download the accepted (mode=good) or rejected (mode=bad) rows as .xlsx."""
    try:
        mode = sanitize_string(request.args.get('mode', 'good'))
        if mode not in ('good', 'bad'):
            return jsonify({'error': 'Invalid export mode. Must be "good" or "bad"'}), 400

        data = request.get_json(silent=True)
        if not data:
            return jsonify({'error': 'No data provided'}), 400

        is_valid, missing = validate_required_fields(data, ['rows'])
        if not is_valid or not isinstance(data['rows'], list):
            return jsonify({'error': f'Missing required fields: {", ".join(missing) or "rows"}'}), 400

        content = export_outcomes(data['rows'], mode)
        filename = 'questions_valides.xlsx' if mode == 'good' else 'questions_erreurs.xlsx'
        return _xlsx_response(content, filename)

    except (ValueError, TypeError) as e:
        return jsonify({'error': f'Invalid rows: {str(e)}'}), 400
    except Exception as e:
        logger.error(f"Export error: {str(e)}")
        return jsonify({'error': f'Export failed: {str(e)}'}), 500


@bp.route('/questions/import', methods=['POST'])
@admin_required
def import_questions():
    """Validate a workbook and commit its accepted rows."""
    try:
        file_content, filename, error_response = _read_upload()
        if error_response:
            return error_response

        logger.info(f"Starting question import: {filename}")
        result = validate_workbook(file_content)

        matcher = CatalogMatcher.from_store(catalog_store())
        importer = BulkImporter(
            matcher,
            question_store(),
            batch_size=current_app.config.get('IMPORT_BATCH_SIZE', 50)
        )
        report = importer.run(result)

        return jsonify({
            'message': f"Imported {report.imported} of {report.total} questions",
            'data': report.to_dict()
        }), 200

    except IngestError as e:
        logger.warning(f"Workbook rejected: {e}")
        return jsonify({'error': str(e)}), 400
    except Exception as e:
        logger.error(f"Import error: {str(e)}")
        return jsonify({'error': f'Import failed: {str(e)}'}), 500


@bp.route('/questions/import/errors', methods=['POST'])
@admin_required
def export_import_errors():
    """Download the rows that failed during an import as .xlsx."""
    try:
        data = request.get_json(silent=True)
        if not data:
            return jsonify({'error': 'No data provided'}), 400

        failed_rows = data.get('failed_rows')
        if not isinstance(failed_rows, list):
            return jsonify({'error': 'Missing required fields: failed_rows'}), 400

        return _xlsx_response(export_failed_rows(failed_rows), 'import_erreurs.xlsx')

    except Exception as e:
        logger.error(f"Error report export failed: {str(e)}")
        return jsonify({'error': f'Export failed: {str(e)}'}), 500
