"""
=============================================================================
API ROUTES
=============================================================================

    ┌────────┬──────────────────┬───────────────────────────┬────────────────┐
    │ Method │ Path             │ Handler                   │ Middleware     │
    ├────────┼──────────────────┼───────────────────────────┼────────────────┤
    │ GET    │ /                │ HomeController@index      │                │
    │ GET    │ /api             │ HomeController@index      │                │
    │ GET    │ /users           │ UserController@get_all    │ AuthMiddleware │
    │ GET    │ /users/:id       │ UserController@get_one    │ AuthMiddleware │
    │ POST   │ /users           │ UserController@add_new    │                │
    │ PUT    │ /users/:id       │ UserController@update     │ AuthMiddleware │
    │ DELETE │ /users/:id       │ UserController@destroy    │ AuthMiddleware │
    │ POST   │ /auth/register   │ AuthController@register   │                │
    │ POST   │ /auth/login      │ AuthController@login      │                │
    │ POST   │ /auth/logout     │ AuthController@logout     │ AuthMiddleware │
    └────────┴──────────────────┴───────────────────────────┴────────────────┘

=============================================================================
"""

AUTH = ["AuthMiddleware"]


def register_routes(app) -> None:
    """Register the bundled API on an App."""
    app.route("GET", "/", "HomeController@index")
    app.route("GET", "/api", "HomeController@index")

    app.route("GET", "/users", "UserController@get_all", AUTH)
    app.route("GET", "/users/:id", "UserController@get_one", AUTH)
    app.route("POST", "/users", "UserController@add_new")
    app.route("PUT", "/users/:id", "UserController@update", AUTH)
    app.route("DELETE", "/users/:id", "UserController@destroy", AUTH)

    app.route("POST", "/auth/register", "AuthController@register")
    app.route("POST", "/auth/login", "AuthController@login")
    app.route("POST", "/auth/logout", "AuthController@logout", AUTH)
