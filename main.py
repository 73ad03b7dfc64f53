"""Simple entrypoint to render a sample design locally."""

import json

from models.design import DecalLayer, DesignDescriptor, TextStyleDescriptor
from studio_app.app import DecalStudioApp


def main() -> None:
    app = DecalStudioApp()
    descriptor = DesignDescriptor(
        garment_type="tshirt",
        decal_slots={
            "front": DecalLayer(
                source_kind="generatedText",
                text=TextStyleDescriptor(content="HELLO", font="Arial", size=100),
            )
        },
    )
    resolved = app.resolve(descriptor)
    summary = {
        "flags": resolved["flags"],
        "instructions": [
            {key: value for key, value in instruction.items() if key != "texture"}
            for instruction in resolved["renderPlan"]["instructions"]
        ],
    }
    print(json.dumps(summary, indent=2))


if __name__ == "__main__":
    main()
