"""
Write the OpenAPI document to interfaces/openapi.json.

WebSocket endpoints are not part of OpenAPI, so they are attached under the
'x-websocket-endpoints' extension.

Usage:
    python -m workforce_api.api.generate_openapi [output_dir]
"""
import json
import os
import sys

from workforce_api.api.main import WEBSOCKET_ENDPOINTS, app


# PUBLIC_INTERFACE
def build_openapi() -> dict:
    schema = app.openapi()
    schema["x-websocket-endpoints"] = WEBSOCKET_ENDPOINTS
    return schema


def main(output_dir: str = "interfaces") -> str:
    os.makedirs(output_dir, exist_ok=True)
    output_path = os.path.join(output_dir, "openapi.json")
    with open(output_path, "w") as f:
        json.dump(build_openapi(), f, indent=2)
    return output_path


if __name__ == "__main__":
    print(main(*sys.argv[1:2]))
