import os
from werkzeug.utils import secure_filename


def validate_required_fields(data, required_fields):
    """
    Validate that required fields are present in data.
    Returns tuple (is_valid, missing_fields)
    """
    missing = []
    for field in required_fields:
        if field not in data or data[field] is None or data[field] == '':
            missing.append(field)

    return len(missing) == 0, missing


def sanitize_string(value, max_length=None):
    """
    Sanitize a string value by stripping whitespace
    and optionally truncating to max_length.
    """
    if not isinstance(value, str):
        return value

    value = value.strip()

    if max_length and len(value) > max_length:
        value = value[:max_length]

    return value


def validate_upload(file, allowed_extensions):
    """
    Validate an uploaded workbook.
    Returns tuple (is_valid, error_message)
    """
    if file is None:
        return False, "No file provided"

    filename = secure_filename(file.filename or '')
    if not filename:
        return False, "No file selected"

    ext = os.path.splitext(filename)[1].lower()
    if ext not in allowed_extensions:
        return False, f"Invalid file type. Allowed: {', '.join(sorted(allowed_extensions))}"

    return True, None
