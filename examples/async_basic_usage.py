"""Basic asynchronous usage example for the Cesium tiler client.

This example runs the whole workflow with the async client and prints
each step as it starts.
"""

import asyncio

from cesium.tiler import AsyncTilerClient, AsyncTilingWorkflow, TilerConfig, WorkflowStep

# Configuration - set CESIUM_AUTH_TOKEN in the environment
INPUT_DIR = "./model"
OUTPUT_FILE = "./output.zip"


def on_step(step: WorkflowStep):
    print(f"--> {step.value}")


async def main():
    config = TilerConfig.from_env()

    async with AsyncTilerClient(config) as client:
        workflow = AsyncTilingWorkflow(client, poll_interval=5, poll_timeout=3600, on_step=on_step)
        result = await workflow.run("Test", "Test", INPUT_DIR, OUTPUT_FILE)

    print(result.upload_report.summary())
    print(f"\n=== Done! Archive {result.archive.id} written to {result.output_path} ===")


if __name__ == "__main__":
    asyncio.run(main())
