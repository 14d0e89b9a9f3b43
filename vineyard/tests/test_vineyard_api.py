from __future__ import annotations

import secrets

from django.contrib.auth import get_user_model
from rest_framework.test import APITestCase

User = get_user_model()

BLOCKS_URL = "/api/v1/blocks/"

SQUARE = {
    "type": "Polygon",
    "coordinates": [
        [[36.0, -1.0], [36.0, -0.9], [36.1, -0.9], [36.1, -1.0], [36.0, -1.0]]
    ],
}


class VineyardBlockApiTests(APITestCase):
    def setUp(self) -> None:
        pw = secrets.token_urlsafe(12)
        self.user1 = User.objects.create_user(username="u1", password=pw)
        self.user2 = User.objects.create_user(username="u2", password=pw)

    def test_user_sees_only_their_blocks(self) -> None:
        self.client.force_authenticate(user=self.user1)
        r1 = self.client.post(
            BLOCKS_URL, {"name": "Block A", "geom": SQUARE}, format="json"
        )
        self.assertEqual(r1.status_code, 201)
        self.assertTrue(r1.json()["has_geometry"])
        self.assertEqual(r1.json()["slug"], "block-a")

        self.client.force_authenticate(user=self.user2)
        r2 = self.client.post(BLOCKS_URL, {"name": "Block B"}, format="json")
        self.assertEqual(r2.status_code, 201)
        self.assertFalse(r2.json()["has_geometry"])

        self.client.force_authenticate(user=self.user1)
        lst = self.client.get(BLOCKS_URL)
        self.assertEqual(lst.status_code, 200)
        names = [x["name"] for x in lst.json()]
        self.assertEqual(names, ["Block A"])

        other = self.client.get(f"{BLOCKS_URL}{r2.json()['id']}/")
        self.assertEqual(other.status_code, 404)

    def test_invalid_geometry_rejected(self) -> None:
        self.client.force_authenticate(user=self.user1)
        bad = {
            "name": "Open ring",
            "geom": {
                "type": "Polygon",
                "coordinates": [[[36.0, -1.0], [36.0, -0.9], [36.1, -0.9]]],
            },
        }
        res = self.client.post(BLOCKS_URL, bad, format="json")
        self.assertEqual(res.status_code, 400)

    def test_duplicate_name_rejected(self) -> None:
        self.client.force_authenticate(user=self.user1)
        self.client.post(BLOCKS_URL, {"name": "Dup"}, format="json")
        res = self.client.post(BLOCKS_URL, {"name": "Dup"}, format="json")
        self.assertEqual(res.status_code, 400)
