"""
Tests for custom exception classes and the global exception handlers

Tests exception initialization, status codes and the error envelope
returned to clients.
"""

from fastapi import FastAPI, status
from fastapi.testclient import TestClient
from pydantic import BaseModel

from nobodyreads.exception_handlers import get_error_type, register_exception_handlers
from nobodyreads.exceptions import (
    AuthenticationError,
    BlogError,
    ErrorCode,
    MarkdownRenderError,
    PageNotFoundError,
    ResourceNotFoundError,
    RevisionNotFoundError,
    ValidationError,
)


class TestBlogError:
    """Test base BlogError class"""

    def test_defaults(self):
        exc = BlogError("Test error")

        assert str(exc) == "Test error"
        assert exc.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
        assert exc.error_code is ErrorCode.UNKNOWN_ERROR
        assert exc.details == {}


class TestSpecificErrors:
    """Test the concrete exception classes"""

    def test_authentication_error(self):
        exc = AuthenticationError()

        assert exc.status_code == 401
        assert exc.message == "Authentication required"
        assert exc.error_code is ErrorCode.AUTH_FAILED

    def test_resource_not_found_without_id(self):
        exc = ResourceNotFoundError("Thing")

        assert exc.message == "Thing not found"
        assert exc.status_code == 404

    def test_page_not_found(self):
        exc = PageNotFoundError("about")

        assert exc.message == "Page with id 'about' not found"
        assert exc.error_code is ErrorCode.RESOURCE_PAGE_NOT_FOUND
        assert exc.details == {"resource_type": "Page", "resource_id": "about"}

    def test_revision_not_found(self):
        exc = RevisionNotFoundError(12)

        assert isinstance(exc, ResourceNotFoundError)
        assert exc.error_code is ErrorCode.RESOURCE_REVISION_NOT_FOUND
        assert exc.details["resource_id"] == 12

    def test_validation_error_with_field(self):
        exc = ValidationError("bad slug", field="slug")

        assert exc.status_code == 400
        assert exc.details == {"field": "slug"}

    def test_markdown_render_error(self):
        exc = MarkdownRenderError()

        assert exc.status_code == 500
        assert exc.error_code is ErrorCode.RENDER_FAILED


class Item(BaseModel):
    count: int


def error_app() -> FastAPI:
    app = FastAPI()
    register_exception_handlers(app)

    @app.get("/revision")
    async def revision():
        raise RevisionNotFoundError(7)

    @app.post("/items")
    async def items(item: Item):
        return item

    @app.get("/boom")
    async def boom():
        raise RuntimeError("database is on fire")

    return app


class TestExceptionHandlers:
    """Test the error envelope"""

    def test_blog_error_envelope(self):
        client = TestClient(error_app())

        response = client.get("/revision")

        assert response.status_code == 404
        assert response.json() == {
            "error": {
                "status_code": 404,
                "message": "Site bundle revision with id '7' not found",
                "type": "Not Found",
                "error_code": "RESOURCE_REVISION_NOT_FOUND",
                "details": {"resource_type": "Site bundle revision", "resource_id": 7},
                "path": "/revision",
            }
        }

    def test_http_exception_envelope(self):
        client = TestClient(error_app())

        response = client.get("/nothing-here")

        assert response.status_code == 404
        assert response.json()["error"]["error_code"] == "RESOURCE_NOT_FOUND"

    def test_request_validation_envelope(self):
        client = TestClient(error_app())

        response = client.post("/items", json={"count": "many"})

        assert response.status_code == 422
        error = response.json()["error"]
        assert error["type"] == "Validation Error"
        assert error["details"]["validation_errors"][0]["field"] == "count"

    def test_unhandled_exception_hides_details(self):
        client = TestClient(error_app(), raise_server_exceptions=False)

        response = client.get("/boom")

        assert response.status_code == 500
        assert "fire" not in response.text
        assert response.json()["error"]["error_code"] == "INTERNAL_ERROR"

    def test_error_types(self):
        assert get_error_type(401) == "Unauthorized"
        assert get_error_type(418) == "Error"
