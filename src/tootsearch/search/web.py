"""
HTTP front end: exposes the query processor as a small JSON API.
"""
import logging

from flask import Flask, jsonify, request

from tootsearch.common.errors import QueryExecutionError, QueryParseError

logger = logging.getLogger("web")


def create_app(query_processor):
    app = Flask(__name__)

    def run_search():
        query = request.args.get('query', '')
        max_results = request.args.get('max_results', type=int)
        try:
            results = [hit.to_dict() for hit in query_processor.search(query, max_results)]
        except QueryParseError as e:
            return jsonify({'query': query, 'error': str(e)}), 400
        except QueryExecutionError as e:
            logger.error(f"Search failed for '{query}': {e}")
            return jsonify({'query': query, 'error': 'Search failed'}), 500

        return jsonify({
            'query': query,
            'results': results,
            'result_count': len(results),
        })

    @app.route('/')
    def frontend():
        if request.args.get('action') == 'search':
            return run_search()
        return jsonify({'message': 'Search hashtag timelines with /api/search?query=...'})

    @app.route('/api/search')
    def search_api():
        return run_search()

    return app
