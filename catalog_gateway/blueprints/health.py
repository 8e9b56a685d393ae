"""
Health Monitoring Blueprint

Unprefixed operational endpoints for load balancers and Prometheus.

Endpoints:
    GET /health: Application status and collaborator registration summary
    GET /metrics: Prometheus exposition of the pipeline metrics
"""

from flask import Blueprint, Response, current_app, jsonify

from ..business.services import get_catalog_services
from ..monitoring.metrics import render_latest

health_bp = Blueprint('health', __name__)


@health_bp.route('/health', methods=['GET'])
def health_check():
    """
    Basic application status.

    Collaborators are reported as configured or not; the gateway does not
    probe them.
    """
    catalog_services = get_catalog_services()
    return jsonify({
        'status': 'healthy',
        'app': current_app.config.get('APP_NAME'),
        'version': current_app.config.get('APP_VERSION'),
        'collaborators': {
            'search': catalog_services.search is not None,
            'recommendations': catalog_services.recommendations is not None,
            'store': catalog_services.store is not None,
        }
    })


@health_bp.route('/metrics', methods=['GET'])
def metrics_endpoint():
    payload, content_type = render_latest()
    return Response(payload, content_type=content_type)
