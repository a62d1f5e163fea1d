"""
Bottle application serving variants under the public path.
"""

import logging
from functools import wraps

from bottle import Bottle, HTTPResponse, request, static_file

from .errors import InputDirectoryMissing
from .pipeline import Pipeline
from .resolver import Resolution

logger = logging.getLogger(__name__)


def allow_cross_origin(func):
    """Decorate a view function to allow cross domain access."""
    @wraps(func)
    def wrapper(*args, **kwargs):
        result = func(*args, **kwargs)
        result.set_header('Access-Control-Allow-Origin', '*')
        return result
    return wrapper


def to_response(resolution: Resolution) -> HTTPResponse:
    """Translate a resolver outcome into an HTTP response."""
    if not resolution.served:
        return HTTPResponse(
            resolution.message or 'Error',
            status=resolution.http_status,
            headers={'Content-Type': 'text/plain; charset=utf-8'},
        )

    optimized = 'on-the-fly' if resolution.optimized_on_the_fly else 'cached'

    if resolution.file_path is not None:
        resp = static_file(
            resolution.file_path.name,
            root=str(resolution.file_path.parent),
            mimetype=resolution.content_type,
        )
        if resp.status_code == 200:
            resp.set_header('Cache-Control', resolution.cache_control)
        resp.set_header('X-Image-Optimized', optimized)
        return resp

    return HTTPResponse(
        resolution.body,
        status=200,
        headers={
            'Content-Type': resolution.content_type,
            'Content-Length': str(len(resolution.body)),
            'Cache-Control': resolution.cache_control,
            'X-Image-Optimized': optimized,
        },
    )


def create_app(pipeline: Pipeline) -> Bottle:
    """Build the WSGI application for a pipeline."""
    app = Bottle()
    public_path = pipeline.config.public_path.rstrip('/')

    @app.route(f"{public_path}/<path:path>", method=['GET', 'HEAD'])
    @allow_cross_origin
    def serve_image(path):
        """Serve a pre-built, disk-cached or freshly generated variant."""
        try:
            resolution = pipeline.resolve(path, request.query)
        except Exception as e:
            logger.exception(f"Unexpected error serving {path}: {e}")
            return HTTPResponse(
                'Failed to process image',
                status=500,
                headers={'Content-Type': 'text/plain; charset=utf-8'},
            )
        return to_response(resolution)

    @app.route('/')
    def main_page():
        return 'Image optimizer'

    return app


def run_server(pipeline: Pipeline, host: str = '0.0.0.0', port: int = 8080, **kwargs) -> None:
    """Run the startup pass, then serve until interrupted."""
    from bottle import run

    try:
        pipeline.startup()
    except InputDirectoryMissing as e:
        logger.error(str(e))

    app = create_app(pipeline)
    logger.info("running server...")
    try:
        run(app=app, host=host, port=port, **kwargs)
    finally:
        pipeline.close()
        logger.info("Exiting.")
