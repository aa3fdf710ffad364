import sys
import httpx

base_url = sys.argv[1] if len(sys.argv) > 1 else "http://localhost:8000"
project_id = int(sys.argv[2]) if len(sys.argv) > 2 else 1

resp = httpx.get(f"{base_url}/health", timeout=5)
resp.raise_for_status()
print("health:", resp.json())

resp = httpx.post(
    f"{base_url}/assets/with-version",
    json={"asset": {"project_id": project_id, "name": "Smoke check asset"}, "version": {}},
    timeout=10,
)
resp.raise_for_status()
created = resp.json()
asset = created["asset"]
first = created["version"]
print("asset:", asset["code"], "first version:", first["code"])

resp = httpx.post(
    f"{base_url}/versions",
    json={"entity_type": "asset", "entity_id": asset["id"]},
    timeout=10,
)
resp.raise_for_status()
second = resp.json()
print("second version:", second["code"], "latest:", second["latest"])

resp = httpx.delete(f"{base_url}/versions/{second['id']}", timeout=10)
resp.raise_for_status()
resp = httpx.get(f"{base_url}/versions/{first['id']}", timeout=10)
resp.raise_for_status()
print("promoted back:", resp.json()["latest"])
