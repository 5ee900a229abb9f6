from enum import Enum

class ErrorCode(str, Enum):
    """
    Canonical error codes for log crumbs and the public error envelope.
    The first block mirrors the regeneration skip taxonomy; none of them
    is fatal to the host.
    """
    entity_missing              = "entity_missing"
    wrong_kind                  = "wrong_kind"
    generation_failed           = "generation_failed"
    post_generation_file_absent = "post_generation_file_absent"
    contended_file_absent       = "contended_file_absent"
    generator_unavailable       = "generator_unavailable"
    lock_unavailable            = "lock_unavailable"
    lock_release_failed         = "lock_release_failed"
    # host-level
    validation_failed           = "validation_failed"
    internal                    = "internal"

__all__ = ["ErrorCode"]
