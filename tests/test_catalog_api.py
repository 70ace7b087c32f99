"""
API tests for the pom and texture catalogue.
"""


def create_pom(client, **fields):
    return client.post("/api/poms", json=fields)


class TestPoms:
    """/api/poms"""

    def test_create_and_list_sorted(self, client):
        assert create_pom(client, code="205", material="Silk").status_code == 201
        assert create_pom(client, series="NZW", code="101", material="Wool").status_code == 201

        poms = client.get("/api/poms").get_json()["poms"]
        assert [pom["label"] for pom in poms] == ["NZW-101", "205"]

    def test_code_is_required(self, client):
        response = create_pom(client, series="NZW")
        assert response.status_code == 400
        assert response.get_json()["error"] == "Pom code is required."

    def test_explicit_id_must_be_unique(self, client):
        assert create_pom(client, id="nzw-101", code="101").status_code == 201
        assert create_pom(client, id="nzw-101", code="102").status_code == 400
        assert client.get("/api/poms/nzw-101").get_json()["pom"]["code"] == "101"

    def test_storage_images_are_proxied(self, client):
        pom = create_pom(
            client, code="101", front_url="https://storage.example.com/front.jpg", side_url="/static/uploads/side.jpg"
        ).get_json()["pom"]

        assert pom["front_url"] == "https://storage.example.com/front.jpg"
        assert pom["front_image"].startswith("/api/image-proxy?src=")
        assert pom["side_image"] == "/static/uploads/side.jpg"

    def test_delete(self, client):
        pom_id = create_pom(client, code="101").get_json()["pom"]["id"]
        assert client.delete(f"/api/poms/{pom_id}").status_code == 200
        assert client.get(f"/api/poms/{pom_id}").status_code == 404
        assert client.delete(f"/api/poms/{pom_id}").status_code == 404

    def test_assign_to_color(self, client):
        pom_id = create_pom(client, series="NZW", code="101", material="Wool").get_json()["pom"]["id"]
        response = client.post(f"/api/poms/{pom_id}/assign", json={"color": {"hex": "#FF0000", "pct": 40}})

        assert response.status_code == 200
        color = response.get_json()["color"]
        assert color["hex"] == "#ff0000"
        assert color["pomId"] == pom_id
        assert color["pomLabel"] == "NZW-101"

    def test_assign_requires_valid_color(self, client):
        pom_id = create_pom(client, code="101").get_json()["pom"]["id"]
        response = client.post(f"/api/poms/{pom_id}/assign", json={"color": {"hex": "red"}})
        assert response.status_code == 400
        assert client.post("/api/poms/missing/assign", json={}).status_code == 404


class TestTextures:
    """/api/textures"""

    def test_create_list_and_delete(self, client):
        client.post("/api/textures", json={"name": "loop pile", "material": "Wool"})
        created = client.post("/api/textures", json={"name": "Cut Pile", "thumb_url": "/static/uploads/t.jpg"})
        assert created.status_code == 201
        texture = created.get_json()["texture"]
        assert texture["image"] == "/static/uploads/t.jpg"

        names = [item["name"] for item in client.get("/api/textures").get_json()["textures"]]
        assert names == ["Cut Pile", "loop pile"]

        assert client.delete(f"/api/textures/{texture['id']}").status_code == 200
        assert client.get(f"/api/textures/{texture['id']}").status_code == 404

    def test_name_is_required(self, client):
        response = client.post("/api/textures", json={"material": "Wool"})
        assert response.status_code == 400
        assert response.get_json()["error"] == "Texture name is required."
