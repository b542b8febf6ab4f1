"""Create a Compute Engine instance and block until the insert finishes.

Demonstrates:
- binding a waiter to a zonal operations client
- loading the wait timeout from opwait.toml
- telling a timeout apart from a failed operation

Requires google-cloud-compute and application default credentials.
"""

import sys

from google.cloud import compute_v1

import opwait
from opwait import LogConfig, OperationError, OperationTimeoutError

PROJECT = "my-project"
ZONE = "us-central1-a"


def main() -> int:
    handler_ids = opwait.setup_logging(LogConfig(level="DEBUG"))
    config = opwait.load_wait_config()

    instances = compute_v1.InstancesClient()
    instance = compute_v1.Instance(
        name="opwait-demo",
        machine_type=f"zones/{ZONE}/machineTypes/e2-small",
        disks=[
            compute_v1.AttachedDisk(
                boot=True,
                auto_delete=True,
                initialize_params=compute_v1.AttachedDiskInitializeParams(
                    source_image="projects/debian-cloud/global/images/family/debian-12",
                ),
            )
        ],
        network_interfaces=[compute_v1.NetworkInterface(network="global/networks/default")],
    )

    operation = instances.insert_unary(project=PROJECT, zone=ZONE, instance_resource=instance)

    waiter = opwait.compute_waiter(compute_v1.ZoneOperationsClient(), PROJECT, zone=ZONE)
    waiter.set_op(operation)

    try:
        opwait.operation_wait(
            waiter, "instance creation", config.timeout_minutes, policy=config.policy,
        )
    except OperationTimeoutError as e:
        print(f"Still running, check the console: {e}", file=sys.stderr)
        return 2
    except OperationError as e:
        print(f"Insert failed ({e.code}): {e.message}", file=sys.stderr)
        return 1
    finally:
        opwait.teardown_logging(handler_ids)

    print(f"Instance ready: {waiter.op_name()}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
