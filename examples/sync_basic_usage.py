"""Basic synchronous usage example for the Cesium tiler client.

This example demonstrates how to use the synchronous client step by step:
1. Create an asset and upload its source files
2. Wait for tiling to complete
3. Create an archive, wait for it and download it
"""

from cesium.tiler import Asset, SourceUploader, TilerClient, TilerConfig

# Configuration - set CESIUM_AUTH_TOKEN in the environment
INPUT_DIR = "./model"
OUTPUT_FILE = "./output.zip"


def on_progress(asset: Asset):
    """Progress callback."""
    print(f"Tiling: {asset.status.value if asset.status else '?'} {asset.percent_complete or 0}%")


def main():
    config = TilerConfig.from_env()

    with TilerClient(config) as client:
        created = client.create_asset("Test", "Test")
        print(f"Created asset {created.asset_id}")

        uploader = SourceUploader(created.upload_location, region=config.region)
        report = uploader.upload_directory(INPUT_DIR, created.asset_id)
        print(report.summary())

        client.notify_upload_complete(created.asset_id)
        client.wait_for_asset(created.asset_id, poll_interval=5, progress_callback=on_progress)

        archive = client.create_archive(created.asset_id)
        archive = client.wait_for_archive(archive.id, poll_interval=5)

        client.download_archive(archive.id, OUTPUT_FILE)
        print(f"\n=== Done! Archive written to {OUTPUT_FILE} ===")


if __name__ == "__main__":
    main()
