import unittest

from fastapi import Depends, FastAPI
from fastapi.testclient import TestClient

from paginate_helper.api.deps import paginate_params
from paginate_helper.schemas.paginate import QueryOptions
from paginate_helper.services.paginate import paginate
from paginate_helper.services.queryable import SqlAlchemyQueryable
from tests.base import BOB_POSTS, PaginateDbTestBase, Post


class PaginateParamsTests(PaginateDbTestBase):
    @classmethod
    def setUpClass(cls):
        super().setUpClass()
        app = FastAPI()
        session_factory = cls.SessionLocal

        posts_params = paginate_params(
            search_fields=("title", "author.email"),
            filterable=("status", "author.name"),
            with_=("author",),
            order_fields=("id", "views", "author.name"),
        )

        @app.get("/posts")
        def list_posts(options: QueryOptions = Depends(posts_params)):
            with session_factory() as session:
                result = paginate(SqlAlchemyQueryable(session.query(Post)), options)
                return result.to_dict(serialize=lambda post: {"id": post.id, "author": post.author.name})

        cls.client = TestClient(app)

    def _get(self, query: str = ""):
        return self.client.get(f"/posts{query}")

    def test_page_and_size_from_query_string(self):
        response = self._get("?page=2&per_page=10")
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual([item["id"] for item in body["items"]], list(range(11, 21)))
        self.assertEqual(body["total"], 25)
        self.assertEqual(body["page"], 2)
        self.assertEqual(body["last_page"], 3)

    def test_repeated_filter_becomes_membership(self):
        body = self._get("?filter[status]=active&filter[status]=pending&per_page=100").json()
        self.assertEqual(body["total"], 17)

    def test_related_filter_and_eager_loaded_author(self):
        body = self._get("?filter[author.name]=Bob").json()
        self.assertEqual([item["id"] for item in body["items"]], list(BOB_POSTS))
        self.assertEqual({item["author"] for item in body["items"]}, {"Bob"})

    def test_filters_outside_allow_list_and_empty_values_are_ignored(self):
        self.assertEqual(self._get("?filter[views]=10").json()["total"], 25)
        self.assertEqual(self._get("?filter[status]=").json()["total"], 25)

    def test_search_uses_endpoint_fields(self):
        body = self._get("?search=foo").json()
        self.assertEqual(body["total"], 4)

    def test_sort_from_query_string(self):
        body = self._get("?order_by=views&order_direction=DESC&per_page=3").json()
        self.assertEqual([item["id"] for item in body["items"]], [25, 24, 23])

    def test_invalid_direction_is_rejected(self):
        self.assertEqual(self._get("?order_direction=sideways").status_code, 400)

    def test_sort_field_outside_allow_list_is_rejected(self):
        self.assertEqual(self._get("?order_by=title").status_code, 400)

    def test_page_size_bounds(self):
        self.assertEqual(self._get("?per_page=0").status_code, 422)
        self.assertEqual(self._get("?per_page=1000").status_code, 422)
        self.assertEqual(self._get("?page=0").status_code, 422)


if __name__ == "__main__":
    unittest.main()
