"""
Unit tests for path normalization, route patterns and the route table.
"""

import pytest

from elephina.http.routing import (
    HTTPMethod,
    RoutePattern,
    RoutePatternError,
    RouteTable,
    normalize_path,
)


def dummy_handler(ctx, response):
    """Dummy handler for testing."""
    response.success({"path": ctx.path}).send()


class TestNormalizePath:
    """Tests for normalize_path()."""

    @pytest.mark.parametrize("raw, expected", [
        ("/users", "/users"),
        ("/users/", "/users"),
        ("users", "/users"),
        ("//users///42/", "/users/42"),
        ("/users/42?sort=name", "/users/42"),
        ("/users#top", "/users"),
        ("/", "/"),
        ("", "/"),
        ("///", "/"),
    ])
    def test_normalize(self, raw, expected):
        assert normalize_path(raw) == expected

    @pytest.mark.parametrize("raw", ["//a//b/", "x/y?z", "/", "", "/users/:id/"])
    def test_idempotent(self, raw):
        """Normalizing twice changes nothing."""
        once = normalize_path(raw)
        assert normalize_path(once) == once


class TestRoutePattern:
    """Tests for RoutePattern.compile() and match()."""

    def test_static_pattern(self):
        pattern = RoutePattern.compile("/users")
        assert pattern.param_names == ()
        assert pattern.match("/users") == {}
        assert pattern.match("/users/1") is None

    def test_parameters_in_order(self):
        pattern = RoutePattern.compile("/users/:user_id/posts/:post_id")
        assert pattern.param_names == ("user_id", "post_id")
        assert pattern.match("/users/7/posts/99") == {"user_id": "7", "post_id": "99"}

    def test_parameter_does_not_span_segments(self):
        pattern = RoutePattern.compile("/users/:id")
        assert pattern.match("/users/1/2") is None

    def test_values_stay_strings(self):
        assert RoutePattern.compile("/items/:id").match("/items/007") == {"id": "007"}

    def test_literals_are_escaped(self):
        """A dot in a template is a dot, not "any character"."""
        pattern = RoutePattern.compile("/files/report.csv")
        assert pattern.match("/files/report.csv") == {}
        assert pattern.match("/files/reportXcsv") is None

    def test_anchored(self):
        pattern = RoutePattern.compile("/api")
        assert pattern.match("/api/users") is None
        assert pattern.match("/v1/api") is None

    def test_root(self):
        pattern = RoutePattern.compile("/")
        assert pattern.match("/") == {}
        assert pattern.match("/x") is None

    def test_template_is_normalized(self):
        assert RoutePattern.compile("users/:id/").template == "/users/:id"

    def test_digit_leading_name(self):
        pattern = RoutePattern.compile("/auth/:2fa")
        assert pattern.match("/auth/123456") == {"2fa": "123456"}

    @pytest.mark.parametrize("template", ["", "   ", None])
    def test_empty_template_rejected(self, template):
        with pytest.raises(RoutePatternError):
            RoutePattern.compile(template)


class TestHTTPMethod:
    """Tests for HTTPMethod.parse()."""

    def test_case_insensitive(self):
        assert HTTPMethod.parse("get") is HTTPMethod.GET
        assert HTTPMethod.parse(HTTPMethod.PATCH) is HTTPMethod.PATCH

    def test_str_equality(self):
        assert HTTPMethod.DELETE == "DELETE"

    @pytest.mark.parametrize("method", ["HEAD", "OPTIONS", "BREW", ""])
    def test_unknown_method(self, method):
        with pytest.raises(ValueError):
            HTTPMethod.parse(method)


class TestRouteTable:
    """Tests for RouteTable."""

    def test_register_and_lookup(self):
        table = RouteTable()
        route = table.register("GET", "/users/:id", dummy_handler, ["AuthMiddleware"])

        match = table.lookup("GET", "/users/42")
        assert match is not None
        assert match.route is route
        assert match.params == {"id": "42"}
        assert route.middleware == ("AuthMiddleware",)

    def test_lookup_normalizes_path(self):
        table = RouteTable()
        table.register("GET", "/users", dummy_handler)
        assert table.lookup("GET", "/users/") is not None
        assert table.lookup("GET", "//users?x=1") is not None

    def test_first_match_wins(self):
        """Registration order decides, not specificity."""
        table = RouteTable()
        generic = table.register("GET", "/users/:id", dummy_handler)
        table.register("GET", "/users/new", dummy_handler)

        match = table.lookup("GET", "/users/new")
        assert match.route is generic
        assert match.params == {"id": "new"}

    def test_lookup_respects_method(self):
        table = RouteTable()
        table.register("PUT", "/users/:id", dummy_handler)
        assert table.lookup("GET", "/users/1") is None
        assert table.lookup("put", "/users/1") is not None

    def test_unknown_method_rejected(self):
        table = RouteTable()
        with pytest.raises(ValueError):
            table.register("BREW", "/coffee", dummy_handler)
        assert len(table) == 0

    def test_empty_template_rejected(self):
        with pytest.raises(ValueError):
            RouteTable().register("GET", "", dummy_handler)

    def test_find_all_keeps_order(self):
        table = RouteTable()
        first = table.register("GET", "/a", dummy_handler)
        table.register("POST", "/a", dummy_handler)
        second = table.register("GET", "/b", dummy_handler)

        assert table.find_all("GET") == (first, second)
        assert table.find_all("HEAD") == ()
        assert table.find_all("DELETE") == ()

    def test_methods_and_len(self):
        table = RouteTable()
        table.register("GET", "/a", dummy_handler)
        table.register("POST", "/a", dummy_handler)
        table.register("GET", "/b", dummy_handler)

        assert table.methods() == (HTTPMethod.GET, HTTPMethod.POST)
        assert len(table) == 3
        assert len(list(table)) == 3

    def test_string_handler_reference(self):
        table = RouteTable()
        route = table.register("GET", "/", "HomeController@index")
        assert route.handler == "HomeController@index"
        assert route.describe() == "GET /"

    def test_describe(self):
        table = RouteTable()
        table.register("DELETE", "/users/:id", dummy_handler, ["AuthMiddleware"])
        lines = table.describe()
        assert len(lines) == 1
        assert lines[0].startswith("DELETE")
        assert "/users/:id" in lines[0]
        assert lines[0].endswith("[AuthMiddleware]")
