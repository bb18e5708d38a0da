"""
Classification of a container's entrypoint as a shell script or a binary.
"""
import logging
from typing import Callable, List, Optional, Tuple

from ..exceptions import NoEntrypointError
from ..MODELS.container_image import ContainerImageRef, EntrypointKind

logger = logging.getLogger(__name__)

ClassificationPolicy = Callable[[str], EntrypointKind]


class SuffixPolicy:
    """
    Treats a token as a script when its name ends with a fixed suffix.

    This is a heuristic: extension-less scripts are reported as binaries,
    and anything ending in the suffix is reported as a script.
    """
    def __init__(self, suffix: str = ".sh"):
        self.suffix = suffix

    def __call__(self, token: str) -> EntrypointKind:
        if not token:
            return EntrypointKind.UNRESOLVED
        if token.endswith(self.suffix):
            return EntrypointKind.SCRIPT
        return EntrypointKind.BINARY


class EntrypointClassifier:
    """
    Picks the invocable token of a container and classifies it.
    """
    def __init__(self, policy: Optional[ClassificationPolicy] = None):
        """
        :param policy: Callable mapping a token to an EntrypointKind. Defaults to SuffixPolicy().
        """
        self.policy = policy or SuffixPolicy()

    def select_tokens(self, container: ContainerImageRef) -> List[str]:
        """
        Returns the entrypoint tokens, falling back to cmd.

        :raises NoEntrypointError: If both are empty.
        """
        tokens = container.invocation_tokens()
        if not tokens:
            raise NoEntrypointError(f"No entrypoint or cmd found for container {container.short_id}")
        return tokens

    def classify(self, container: ContainerImageRef) -> Tuple[EntrypointKind, str]:
        """
        Classifies the first invocable token of a container.

        :return: The kind and the token it was derived from.
        :raises NoEntrypointError: If the container has nothing to invoke.
        """
        token = self.select_tokens(container)[0]
        kind = self.policy(token)
        logger.info("Entrypoint: %s", token)
        logger.info("Classified entrypoint %s as %s", token, kind.value)
        return kind, token
