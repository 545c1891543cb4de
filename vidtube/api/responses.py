from flask import jsonify, request


def request_payload() -> dict:
    """JSON object body if there is one, otherwise the submitted form fields."""
    data = request.get_json(silent=True)
    if isinstance(data, dict):
        return data
    return request.form.to_dict()


def api_response(data, message: str = "Success", status: int = 200):
    """Build the uniform success envelope and return (response, status)."""
    return jsonify(
        {
            "statusCode": status,
            "data": data,
            "message": message,
            "success": status < 400,
        }
    ), status
