from rest_framework.pagination import PageNumberPagination
from rest_framework.response import Response


class StandardResultsSetPagination(PageNumberPagination):
    page_size = 20
    page_size_query_param = "limit"
    max_page_size = 100

    def get_paginated_response(self, data):
        return Response(
            {
                "success": True,
                "data": {
                    "results": data,
                    "pagination": {
                        "current_page": self.page.number,
                        "total_pages": self.page.paginator.num_pages,
                        "total_items": self.page.paginator.count,
                        "items_per_page": self.get_page_size(self.request),
                        "has_next_page": self.page.has_next(),
                        "has_prev_page": self.page.has_previous(),
                    },
                },
            }
        )
