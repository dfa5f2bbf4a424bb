"""stackops: update checks and safe restarts for a single-host compose stack.

 - image update check: compare running image ids with freshly pulled ones,
   without touching running containers
 - safe restart: clear stale stopped containers that still hold a service's
   name, then let compose (re)create the service

Everything talks to the container runtime through one small adapter
(``docker_ops.ContainerRuntime``) so both can run against a fake in tests.
"""

__version__ = "0.1.0"
