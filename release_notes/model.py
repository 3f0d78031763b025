# SPDX-FileCopyrightText: 2024 SAP SE or an SAP affiliate company and Gardener contributors
#
# SPDX-License-Identifier: Apache-2.0

import dataclasses
import datetime
import enum
import typing


class ReleaseNoteError(RuntimeError):
    pass


class ConfigurationError(ReleaseNoteError, ValueError):
    '''
    raised if a required input is missing or malformed. Always raised before any I/O is done.
    '''
    pass


class InvalidRevisionKind(ConfigurationError):
    def __init__(self, kind: str, field_name: str | None=None):
        self.kind = kind
        self.field_name = field_name

        if field_name:
            msg = f'{field_name} not recognized: {kind!r}, only tag, branch and revision'
        else:
            msg = f'revision kind not recognized: {kind!r}, only tag, branch and revision'

        super().__init__(msg)


class OutputError(ReleaseNoteError):
    '''
    raised if the output file could not be removed, created, written or closed. The underlying
    `OSError` is available as `__cause__`.
    '''
    pass


class ScmError(ReleaseNoteError):
    '''
    raised for any failure of an SCM adapter (unreachable or unknown repository, unknown revision,
    malformed connection-url, refused authentication, ..)
    '''
    pass


class RevisionKind(enum.StrEnum):
    TAG = 'tag'
    BRANCH = 'branch'
    REVISION = 'revision'


@dataclasses.dataclass(frozen=True)
class Revision:
    '''
    a typed reference into source-control history. Revisions of different kinds never compare
    equal, even if their names do.
    '''
    kind: RevisionKind
    name: str

    def __post_init__(self):
        if not isinstance(self.kind, RevisionKind):
            raise ValueError(f'not a RevisionKind: {self.kind=}')
        if not self.name:
            raise ValueError(f'{self.kind} must not be empty')

    def __str__(self):
        return f'{self.kind}:{self.name}'


@dataclasses.dataclass(frozen=True)
class ChangeSet:
    comment: str
    author: str | None = None
    timestamp: datetime.datetime | None = None
    revision_id: str | None = None


@dataclasses.dataclass(frozen=True)
class ChangeLog:
    change_sets: tuple[ChangeSet, ...] = ()
    start: Revision | None = None
    end: Revision | None = None

    def __iter__(self) -> typing.Iterator[ChangeSet]:
        return iter(self.change_sets)

    def __len__(self):
        return len(self.change_sets)

    def __bool__(self):
        return bool(self.change_sets)
