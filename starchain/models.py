# -*- coding: utf-8 -*-
from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Union

from starchain.errors import InvalidInput


def sha256_hex(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def canonical_json(obj: Any) -> str:
    # key order is part of the record format: never sort_keys here
    return json.dumps(obj, separators=(",", ":"), ensure_ascii=False)


def story_to_hex(story: str) -> str:
    return story.encode("utf-8").hex()


def hex_to_story(story_hex: str) -> str:
    try:
        return bytes.fromhex(story_hex).decode("utf-8", errors="replace")
    except ValueError:
        return ""


def record_digest(record: Dict[str, Any]) -> str:
    """SHA-256 of a stored block record (as decoded) with its hash field cleared."""
    payload = dict(record)
    payload["hash"] = ""
    return sha256_hex(canonical_json(payload).encode("utf-8"))


def _blank(value: Any) -> bool:
    return value is None or value == ""


# -------------------------------------------------------------------
# DATACLASSES
# -------------------------------------------------------------------

@dataclass
class Star:
    ra: Any
    dec: Any
    story: str  # hex-encoded once stored
    mag: Any = None
    cen: Any = None

    @classmethod
    def from_request(cls, star: Any) -> "Star":
        """Build a star from client input, hex-encoding the story."""
        if not isinstance(star, dict):
            raise InvalidInput("star data is missing or invalid; check your request and try again")
        for prop in ("dec", "ra", "story"):
            if _blank(star.get(prop)):
                raise InvalidInput(f"star {prop} property is missing; check your request and try again")
        if not isinstance(star["story"], str):
            raise InvalidInput("star story property must be a string")
        return cls(
            ra=star["ra"],
            dec=star["dec"],
            story=story_to_hex(star["story"]),
            mag=star.get("mag"),
            cen=star.get("cen"),
        )

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Star":
        return cls(ra=d["ra"], dec=d["dec"], story=d["story"], mag=d.get("mag"), cen=d.get("cen"))

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"ra": self.ra, "dec": self.dec}
        if self.mag is not None:
            out["mag"] = self.mag
        if self.cen is not None:
            out["cen"] = self.cen
        out["story"] = self.story
        return out

    @property
    def story_decoded(self) -> str:
        return hex_to_story(self.story)


@dataclass
class BlockBody:
    """Block payload: either a plain text record or a star registration.

    ``has_star`` is the tag; ``text`` is only meaningful when it is False,
    ``address``/``star`` only when it is True.
    """

    text: str = ""
    address: str = ""
    star: Optional[Star] = None

    @classmethod
    def plain(cls, text: str) -> "BlockBody":
        return cls(text=text)

    @classmethod
    def star_record(cls, address: str, star: Star) -> "BlockBody":
        return cls(address=address, star=star)

    @property
    def has_star(self) -> bool:
        return self.star is not None

    def to_value(self) -> Union[str, Dict[str, Any]]:
        if self.star is not None:
            return {"address": self.address, "star": self.star.to_dict()}
        return self.text

    @classmethod
    def from_value(cls, raw: Any) -> "BlockBody":
        if isinstance(raw, dict):
            return cls.star_record(str(raw["address"]), Star.from_dict(raw["star"]))
        if isinstance(raw, str):
            return cls.plain(raw)
        raise ValueError(f"unsupported block body type: {type(raw).__name__}")


@dataclass
class Block:
    body: BlockBody = field(default_factory=BlockBody)
    hash: str = ""
    height: int = 0
    time: int = 0
    previous_block_hash: str = ""

    def to_dict(self) -> Dict[str, Any]:
        """Persisted record: hash, height, body, time, previousBlockHash (in that order)."""
        return {
            "hash": self.hash,
            "height": self.height,
            "body": self.body.to_value(),
            "time": self.time,
            "previousBlockHash": self.previous_block_hash,
        }

    def to_json(self) -> str:
        return canonical_json(self.to_dict())

    def compute_hash(self) -> str:
        """Digest over the record with its hash field cleared."""
        return record_digest(self.to_dict())

    @classmethod
    def from_json(cls, raw: str) -> "Block":
        try:
            d = json.loads(raw)
            return cls(
                body=BlockBody.from_value(d["body"]),
                hash=str(d["hash"]),
                height=int(d["height"]),
                time=int(d["time"]),
                previous_block_hash=str(d["previousBlockHash"]),
            )
        except (KeyError, TypeError) as e:
            raise ValueError(f"malformed block record: {e!r}") from e

    def to_api_dict(self) -> Dict[str, Any]:
        """Record as served over HTTP, with the star story decoded."""
        out = self.to_dict()
        if self.body.star is not None:
            out["body"]["star"]["storyDecoded"] = self.body.star.story_decoded
        return out
