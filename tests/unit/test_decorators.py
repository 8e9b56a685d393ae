"""
Request pipeline stage tests.

Each stage is mounted on a bare Flask application so its behavior can be
observed in isolation: context threading, short-circuit responses, error
shapes, async predicates and sanitization.
"""

import dataclasses

import pytest
from flask import Flask, jsonify
from marshmallow import Schema, fields, post_load
from werkzeug.datastructures import MultiDict

import structlog

from catalog_gateway.business.exceptions import BusinessRuleViolationError
from catalog_gateway.business.validators import (
    ProductValidator,
    RecommendationParamsValidator,
    SearchQueryValidator,
)
from catalog_gateway.utils.decorators import (
    RequestContext,
    handle_service_errors,
    parse_query_string,
    sanitize_input,
    validate_business_logic,
    validate_schema,
)

logger = structlog.get_logger("tests.unit.test_decorators")


class ExplodingValidator(Schema):
    value = fields.Str()

    @post_load
    def explode(self, data, **kwargs):
        raise RuntimeError('schema bug')


@pytest.fixture
def stage_app():
    app = Flask(__name__)
    app.config['LOG_VALIDATION_FAILURES'] = True
    return app


def _echo_validated(ctx: RequestContext):
    validated = ctx.validated
    if hasattr(validated, 'model_dump'):
        validated = validated.model_dump(mode='json')
    return jsonify({'validated': validated, 'body': ctx.body, 'params': dict(ctx.params)})


# ============================================================================
# REQUEST CONTEXT
# ============================================================================

class TestRequestContext:

    def test_context_is_immutable(self):
        ctx = RequestContext(body={'name': 'x'})
        with pytest.raises(dataclasses.FrozenInstanceError):
            ctx.validated = 'changed'

    def test_unknown_location_rejected(self):
        with pytest.raises(ValueError):
            RequestContext().location('headers')
        with pytest.raises(ValueError):
            validate_schema(ProductValidator, location='headers')

    def test_parse_query_string(self):
        args = MultiDict([
            ('categories', 'a'),
            ('categories', 'b'),
            ('query', 'lamp'),
            ('attributes[color]', 'red'),
            ('attributes[size]', 'S'),
            ('attributes[size]', 'M'),
            ('tags[]', 'new'),
        ])

        assert parse_query_string(args) == {
            'categories': ['a', 'b'],
            'query': 'lamp',
            'attributes': {'color': 'red', 'size': ['S', 'M']},
            'tags': ['new'],
        }


# ============================================================================
# VALIDATION PIPELINE STAGE
# ============================================================================

class TestValidateSchema:

    def test_valid_body_threads_typed_result(self, stage_app, product_payload):
        stage_app.add_url_rule(
            '/products', 'products', validate_schema(ProductValidator)(_echo_validated), methods=['POST']
        )

        response = stage_app.test_client().post('/products', json=product_payload)

        assert response.status_code == 200
        validated = response.get_json()['validated']
        assert validated['sku'] == 'LAMP2024'
        assert validated['is_active'] is True

    def test_structural_failure_lists_every_violation(self, stage_app, product_payload):
        stage_app.add_url_rule(
            '/products', 'products', validate_schema(ProductValidator)(_echo_validated), methods=['POST']
        )
        product_payload.update(sku='ab12', stock_quantity=-1)

        response = stage_app.test_client().post('/products', json=product_payload)

        assert response.status_code == 400
        assert response.get_json() == {
            'message': 'Validation failed',
            'errors': [
                {'field': 'sku', 'message': 'Invalid SKU format'},
                {'field': 'stock_quantity', 'message': 'Quantity must be non-negative'},
            ],
        }

    def test_missing_body_is_a_structural_failure(self, stage_app):
        stage_app.add_url_rule(
            '/products', 'products', validate_schema(ProductValidator)(_echo_validated), methods=['POST']
        )

        response = stage_app.test_client().post('/products', data='not json', content_type='text/plain')

        assert response.status_code == 400
        assert response.get_json()['errors'] == [{'field': '', 'message': 'Invalid input type.'}]

    def test_query_location(self, stage_app):
        stage_app.add_url_rule(
            '/search', 'search', validate_schema(SearchQueryValidator, location='query')(_echo_validated)
        )

        response = stage_app.test_client().get('/search?pageSize=5&field=name&direction=desc')

        validated = response.get_json()['validated']
        assert validated['page'] == 1
        assert validated['page_size'] == 5
        assert validated['sort'] == {'field': 'name', 'direction': 'desc'}

    def test_params_and_query_are_merged(self, stage_app, ids):
        stage_app.add_url_rule(
            '/products/<productId>/recommendations',
            'recommendations',
            validate_schema(RecommendationParamsValidator, location=('params', 'query'))(_echo_validated)
        )

        response = stage_app.test_client().get(f"/products/{ids['product']}/recommendations?limit=3")

        body = response.get_json()
        assert body['validated'] == {'product_id': ids['product'], 'limit': 3}
        assert body['params'] == {'productId': ids['product']}

    def test_later_location_wins_on_key_clash(self, stage_app, ids):
        stage_app.add_url_rule(
            '/products/<productId>/recommendations',
            'recommendations',
            validate_schema(RecommendationParamsValidator, location=('query', 'params'))(_echo_validated)
        )

        response = stage_app.test_client().get(
            f"/products/{ids['product']}/recommendations?productId={ids['other_product']}"
        )

        assert response.get_json()['validated']['product_id'] == ids['product']

    def test_unexpected_failure_is_opaque(self, stage_app):
        stage_app.add_url_rule(
            '/explode', 'explode', validate_schema(ExplodingValidator)(_echo_validated), methods=['POST']
        )

        response = stage_app.test_client().post('/explode', json={'value': 'x'})

        assert response.status_code == 500
        assert response.get_json() == {'message': 'Internal server error'}

    def test_next_stage_not_called_on_failure(self, stage_app):
        calls = []

        def view(ctx):
            calls.append(ctx)
            return 'ok', 200

        stage_app.add_url_rule('/search', 'search', validate_schema(SearchQueryValidator, location='query')(view))

        response = stage_app.test_client().get('/search?pageSize=150')

        assert response.status_code == 400
        assert calls == []


# ============================================================================
# BUSINESS-LOGIC STAGE
# ============================================================================

def _mount_rule(app, predicate, error_message='Rule failed', with_schema=True):
    view = validate_business_logic(predicate, error_message)(_echo_validated)
    if with_schema:
        view = validate_schema(SearchQueryValidator, location='query')(view)
    app.add_url_rule('/rule', 'rule', view, methods=['GET', 'POST'])
    return app.test_client()


class TestValidateBusinessLogic:

    def test_truthy_predicate_passes_validated_data(self, stage_app, mocker):
        predicate = mocker.Mock(return_value=True)

        response = _mount_rule(stage_app, predicate).get('/rule?minPrice=1')

        assert response.status_code == 200
        (search_query,), _ = predicate.call_args
        assert search_query.filters.as_filters() == {'min_price': 1}

    def test_falsy_predicate_uses_default_message(self, stage_app):
        response = _mount_rule(stage_app, lambda data: False, 'Custom failure').get('/rule')

        assert response.status_code == 400
        assert response.get_json() == {
            'message': 'Validation failed',
            'errors': [{'message': 'Custom failure'}],
        }

    def test_business_rule_violation_message_is_reported(self, stage_app):
        def predicate(data):
            raise BusinessRuleViolationError('Minimum price cannot be greater than maximum price')

        response = _mount_rule(stage_app, predicate).get('/rule')

        assert response.status_code == 400
        assert response.get_json()['errors'] == [
            {'message': 'Minimum price cannot be greater than maximum price'},
        ]

    def test_value_error_message_is_reported(self, stage_app):
        def predicate(data):
            raise ValueError('Quantity exceeds stock')

        response = _mount_rule(stage_app, predicate).get('/rule')

        assert response.status_code == 400
        assert response.get_json()['errors'] == [{'message': 'Quantity exceeds stock'}]

    def test_unexpected_error_is_opaque(self, stage_app):
        def predicate(data):
            raise KeyError('inventory')

        response = _mount_rule(stage_app, predicate).get('/rule')

        assert response.status_code == 500
        assert response.get_json() == {'message': 'Internal server error'}

    def test_async_predicate(self, stage_app):
        async def predicate(data):
            return data.page == 1

        client = _mount_rule(stage_app, predicate, 'Only the first page')

        assert client.get('/rule').status_code == 200
        response = client.get('/rule?page=2')
        assert response.status_code == 400
        assert response.get_json()['errors'] == [{'message': 'Only the first page'}]

    def test_predicate_returning_awaitable_is_awaited(self, stage_app):
        async def first_page_only(data):
            return data.page == 1

        client = _mount_rule(stage_app, lambda data: first_page_only(data), 'Only the first page')

        assert client.get('/rule').status_code == 200
        response = client.get('/rule?page=3')
        assert response.status_code == 400
        assert response.get_json()['errors'] == [{'message': 'Only the first page'}]

    def test_awaitable_raising_business_rule_is_reported(self, stage_app):
        async def inverted_range(data):
            raise BusinessRuleViolationError('Minimum price cannot be greater than maximum price')

        response = _mount_rule(stage_app, lambda data: inverted_range(data)).get('/rule')

        assert response.status_code == 400
        assert response.get_json()['errors'] == [
            {'message': 'Minimum price cannot be greater than maximum price'},
        ]

    def test_raw_body_used_without_schema_stage(self, stage_app, mocker):
        predicate = mocker.Mock(return_value=True)

        client = _mount_rule(stage_app, predicate, with_schema=False)
        client.post('/rule', json={'items': []})

        predicate.assert_called_once_with({'items': []})


# ============================================================================
# SANITIZATION STAGE
# ============================================================================

class TestSanitizeInput:

    def test_named_string_fields_are_sanitized(self, stage_app):
        stage_app.add_url_rule(
            '/echo', 'echo', sanitize_input(['name', 'notes', 'count'])(_echo_validated), methods=['POST']
        )

        response = stage_app.test_client().post('/echo', json={
            'name': '  <b>Desk</b> Lamp ',
            'notes': '<script>alert(1)</script>',
            'count': 3,
            'description': '<i>kept</i>',
        })

        assert response.get_json()['body'] == {
            'name': 'Desk Lamp',
            'notes': 'alert(1)',
            'count': 3,
            'description': '<i>kept</i>',
        }

    def test_sanitization_runs_before_validation(self, stage_app, product_payload):
        view = validate_schema(ProductValidator)(_echo_validated)
        stage_app.add_url_rule('/products', 'products', sanitize_input(['name'])(view), methods=['POST'])
        product_payload['name'] = '<b></b>'

        response = stage_app.test_client().post('/products', json=product_payload)

        assert response.status_code == 400
        assert response.get_json()['errors'] == [{'field': 'name', 'message': 'Name is required'}]

    def test_config_key_overrides_fields(self, stage_app):
        stage_app.config['ECHO_SANITIZE_FIELDS'] = ['title']
        stage_app.add_url_rule(
            '/echo', 'echo',
            sanitize_input(['name'], config_key='ECHO_SANITIZE_FIELDS')(_echo_validated),
            methods=['POST']
        )

        response = stage_app.test_client().post('/echo', json={'name': '<b>x</b>', 'title': '<b>y</b>'})

        assert response.get_json()['body'] == {'name': '<b>x</b>', 'title': 'y'}

    def test_non_object_body_passes_through(self, stage_app):
        stage_app.add_url_rule('/echo', 'echo', sanitize_input(['name'])(_echo_validated), methods=['POST'])

        response = stage_app.test_client().post('/echo', json=['<b>x</b>'])

        assert response.get_json()['body'] == ['<b>x</b>']


# ============================================================================
# HANDLER ERROR BOUNDARY
# ============================================================================

class TestHandleServiceErrors:

    def test_collaborator_failure_is_opaque(self, stage_app):
        def view(ctx):
            raise ConnectionError('search cluster unreachable at 10.0.0.5')

        stage_app.add_url_rule('/fail', 'fail', handle_service_errors('search')(view))

        response = stage_app.test_client().get('/fail')

        assert response.status_code == 500
        assert response.get_json() == {'error': 'Internal server error'}

    def test_successful_view_passes_through(self, stage_app):
        stage_app.add_url_rule('/ok', 'ok', handle_service_errors('ok')(lambda ctx: ('fine', 200)))

        response = stage_app.test_client().get('/ok')

        assert response.status_code == 200
        assert response.data == b'fine'
