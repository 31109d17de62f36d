"""InspectService — read the subject id out of a token or credential file."""

from __future__ import annotations

from pathlib import Path

from natsforge.domain.creds import JWT_BEGIN, parse_creds
from natsforge.domain.errors import ArtifactIOError, ForgeError
from natsforge.domain.tokens import decode_claims, extract_subject_id
from natsforge.infrastructure.filesystem import read_artifact
from natsforge.services.base import BaseService
from natsforge.services.contracts import SubjectData, dump_validated
from natsforge.services.result import ServiceResult


class InspectService(BaseService):
    def subject(self, token_or_path: str) -> ServiceResult:
        """Extract the ``sub`` claim from a raw JWT or a file holding one.

        Files may hold a bare JWT or a full credential bundle.
        """
        op = "subject"
        try:
            source, text = self._load(token_or_path)
            kind = "jwt"
            if JWT_BEGIN in text:
                kind = "creds"
                text = parse_creds(text).jwt
            token = text.strip()
            subject = extract_subject_id(token)
            claims = decode_claims(token)
        except ForgeError as exc:
            return self._failure(op, exc)

        nats = claims.get("nats")
        data = {
            "subject": subject,
            "source": source,
            "kind": kind,
            "name": claims.get("name") if isinstance(claims.get("name"), str) else None,
            "claim_type": nats.get("type") if isinstance(nats, dict) else None,
        }
        return ServiceResult(ok=True, op=op, data=dump_validated(SubjectData, data))

    @staticmethod
    def _load(token_or_path: str) -> tuple[str, str]:
        path = Path(token_or_path)
        try:
            is_file = path.is_file()
        except OSError:
            # Long tokens can exceed the platform's path length limit.
            is_file = False
        if is_file:
            return str(path), read_artifact(path)
        if token_or_path.count(".") == 2 and "/" not in token_or_path:
            return "<argument>", token_or_path
        raise ArtifactIOError("read", token_or_path, "not a file and not a token")
