from ..http.request import RequestContext
from ..http.response import ResponseBuilder
from .base import Controller


class HomeController(Controller):
    def index(self, ctx: RequestContext, response: ResponseBuilder) -> None:
        response.success({"status": "API is running"}, "Welcome to the Elephina API!").send()
