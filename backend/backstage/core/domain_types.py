"""Domain Types — enums for collections, admin roles and reference kinds.

Invariants:
    - Collection names live in one Enum; services resolve them via `.value`
    - Role, owner kind and track entry kind values match the stored documents
    - All valid states encoded as Enums — no raw string matching

Design Decisions:
    - str Enums: serialize to JSON without custom encoders
"""

from enum import Enum


class Collection(str, Enum):
    """MongoDB collections backing each resource."""
    ADMINS = "admins"
    PASSWORD_RESET_TOKENS = "password_reset_tokens"
    BOOKS = "books"
    CDS = "cds"
    CD_TRACKS = "cd_tracks"
    DVDS = "dvds"
    DVD_TRACKS = "dvd_tracks"
    LYRICS = "lyrics"
    PHOTOS = "components_photo_photos"
    SHOWS = "shows"
    TEXTS = "texts"
    CLIPS = "clips"
    MESSAGES = "messages"
    UPLOAD_FILES = "upload_files"


SLUGGED_COLLECTIONS = (
    Collection.BOOKS, Collection.CDS, Collection.DVDS, Collection.LYRICS,
    Collection.PHOTOS, Collection.SHOWS, Collection.TEXTS, Collection.CLIPS,
)


class AdminRole(str, Enum):
    """Administrator roles — super admins approve and remove other admins."""
    ADMIN = "admin"
    SUPER_ADMIN = "super_admin"


class OwnerKind(str, Enum):
    """`kind` recorded in an upload's related entries."""
    BOOK = "Book"
    CD = "Cd"
    CD_TRACK = "CdTrack"
    DVD = "Dvd"
    DVD_TRACK = "DvdTrack"
    PHOTO = "Photo"
    SHOW = "Show"
    TEXT = "Text"
    CLIP = "Clip"


class TrackEntryKind(str, Enum):
    """`kind` of an entry in a CD/DVD embedded track list."""
    CD = "ComponentCdTrack"
    DVD = "ComponentDvdTrack"
