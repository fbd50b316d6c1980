"""Pagination classes shared by the API modules."""

from rest_framework.pagination import PageNumberPagination


class StandardResultsSetPagination(PageNumberPagination):
    """``PAGE_SIZE`` from settings; clients may ask for up to 100 per page."""

    page_size_query_param = "page_size"
    max_page_size = 100
