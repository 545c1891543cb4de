from flask import Blueprint

from vidtube.models import storage
from vidtube.models.user import User

bp = Blueprint("health", __name__)


@bp.get("/health")
def health():
    """
    Health check
    ---
    tags:
      - Health
    responses:
      200:
        description: API is up
        schema:
          type: object
          properties:
            status:
              type: string
              example: ok
            users:
              type: integer
              example: 12
            version:
              type: string
              example: 1.0.0
    """
    return {"status": "ok", "users": storage.count(User), "version": "1.0.0"}, 200
