# SPDX-FileCopyrightText: 2024 SAP SE or an SAP affiliate company and Gardener contributors
#
# SPDX-License-Identifier: Apache-2.0

import release_notes.model as rnm


def resolve(kind: str, identifier: str) -> rnm.Revision:
    '''
    converts a (kind, identifier)-pair as passed by users into a typed `Revision`.

    kind is matched case-insensitively against `tag`, `branch` and `revision`. The identifier is
    retained as passed.

    :raises InvalidRevisionKind: if kind is not one of the accepted kinds
    :raises ConfigurationError: if identifier is empty
    '''
    try:
        revision_kind = rnm.RevisionKind((kind or '').lower())
    except ValueError:
        raise rnm.InvalidRevisionKind(kind=kind) from None

    if not identifier:
        raise rnm.ConfigurationError(f'{revision_kind} identifier must not be empty')

    return rnm.Revision(
        kind=revision_kind,
        name=identifier,
    )


def kind_of(revision: rnm.Revision) -> tuple[str, str]:
    return str(revision.kind), revision.name
