from django.http import HttpResponse

ALLOWED_HEADERS = "authorization, x-client-info, apikey, content-type"
DEFAULT_METHODS = "GET, POST, PATCH, DELETE, OPTIONS"
# Les endpoints d'action (promotion, année académique) n'acceptent que POST
POST_ONLY_PREFIXES = ("/api/students/promote/", "/api/students/academic-year/", "/api/academic-years/")


class SimpleCorsMiddleware:
    """
    Minimal CORS middleware: all origins allowed, preflight answered with 204 before
    authentication runs.
    """

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        if request.method == "OPTIONS":
            response = HttpResponse(status=204)
        else:
            response = self.get_response(request)

        response["Access-Control-Allow-Origin"] = "*"
        response["Access-Control-Allow-Headers"] = ALLOWED_HEADERS
        if request.path.startswith(POST_ONLY_PREFIXES):
            response["Access-Control-Allow-Methods"] = "POST, OPTIONS"
        else:
            response["Access-Control-Allow-Methods"] = DEFAULT_METHODS
        return response
