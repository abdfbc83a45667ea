"""
HTTP trigger for the ingestion run.

    flask --app app run
    curl -X POST http://localhost:5000/

Each request performs one full run and returns its summary as JSON.
"""

import logging

from flask import Flask, Response, jsonify, request

import main

logger = logging.getLogger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
}


def create_app(pipeline=None) -> Flask:
    """`pipeline` is a zero-argument callable returning a main.RunResult."""
    run = pipeline or main.run_pipeline
    app = Flask(__name__)

    @app.route("/", methods=["GET", "POST", "OPTIONS"])
    def fetch_rss_news():
        if request.method == "OPTIONS":
            return Response("", status=200, headers=CORS_HEADERS)

        logger.info("[RUN] Triggered via %s", request.method)
        result = run()
        response = jsonify(result.to_response())
        response.status_code = 200 if result.success else 500
        response.headers.update(CORS_HEADERS)
        return response

    return app


if __name__ == "__main__":
    main.configure_logging(main.LOG_FORMAT)
    create_app().run(host="0.0.0.0", port=5000)
