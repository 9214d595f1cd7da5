# Copyright (C) 2026, Richard Lincoln.
#
# HRSparse.py is free software; you can redistribute it and/or
# modify it under the terms of the GNU Lesser General Public
# License as published by the Free Software Foundation; either
# version 2.1 of the License, or (at your option) any later version.
#
# HRSparse.py is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE. See the GNU
# Lesser General Public License for more details.
#
# You should have received a copy of the GNU Lesser General Public
# License along with this Module; if not, write to the Free Software
# Foundation, Inc, 51 Franklin St, Fifth Floor, Boston, MA 02110-1301

"""HRSparse.py: Hellerman-Rarick ordering of sparse pattern matrices

A square 0/1 matrix is held in compressed-row form together with a row
order and a column order. The topology never changes; hr_transform only
permutes the orders until the matrix is in block-triangular form with a
border of spike columns on the right. Matrices are read from and written
to binary PBM (P4) bitmaps.
"""

import argparse
import logging
import sys

import numpy as np


HR_VER = 1 # HRSparse.py Version 1.0.0
HR_SUBVER = 0
HR_SUBSUB = 0
HR_DATE = "Oct 17, 2026" # HRSparse.py release date
HR_COPYRIGHT = "Copyright (C) Richard Lincoln, 2026"

HR_BLOCK_SIZE = 256 # colind grows in blocks of this size
HR_MAX_LINE = 4096 # maximum length of a PBM header line
HR_MAGIC = b"P4"
HR_HEADER_COMMENT = "CREATOR: HRSparse.py Hellerman-Rarick transform"

logger = logging.getLogger(__name__)


class hrs(object):
    """Active submatrix of a Hellerman-Rarick transform.
    """
    def __init__(self):
        #: rows and columns committed to the diagonal blocks
        self.p = 0
        #: columns committed to the border
        self.q = 0


class hr(object):
    """Square pattern matrix in compressed-row form with row and column
    orders.
    """
    def __init__(self):
        #: number of rows and columns
        self.m = 0
        #: number of entries (size of colind)
        self.nz = 0
        #: rowptr[i] gives the start of physical row i in colind, size m
        self.rowptr = ialloc(0)
        #: rowlen[i] gives the number of entries in physical row i, size m
        self.rowlen = ialloc(0)
        #: physical column indices, unsorted within a row
        self.colind = ialloc(0)
        #: roworder[logical] = physical row, size m
        self.roworder = ialloc(0)
        #: colorder[logical] = physical column, size m
        self.colorder = ialloc(0)
        #: active submatrix of the last transform
        self.active = hrs()


class HRError(Exception):
    """Base class of the errors raised by HRSparse.py.
    """


class DecodeError(HRError):
    """Malformed or truncated PBM input.
    """


class EncodeError(HRError):
    """Failure writing a PBM stream.
    """


def ialloc(n):
    return np.zeros(n, dtype=np.intp)


def hr_spalloc(m, nzmax):
    """Allocate an m-by-m pattern matrix with room for nzmax entries and
    identity row and column orders.

    @param m: number of rows and columns
    @param nzmax: initial capacity of colind
    @return: sparse matrix
    """
    A = hr()
    A.m = m
    A.rowptr = ialloc(m)
    A.rowlen = ialloc(m)
    A.colind = ialloc(max(nzmax, 1))
    A.roworder = np.arange(m, dtype=np.intp)
    A.colorder = np.arange(m, dtype=np.intp)
    return A


def hr_sprealloc(A, nzmax):
    """Change the capacity of colind. nzmax <= 0 trims it to A.nz.

    @param A: sparse matrix
    @param nzmax: new capacity
    @return: true if successful, false on error
    """
    if A is None:
        return False
    if nzmax <= 0:
        nzmax = A.nz
    colind = ialloc(nzmax)
    length = min(nzmax, len(A.colind))
    colind[:length] = A.colind[:length]
    A.colind = colind
    return True


def hr_from_rows(rows):
    """Builds a matrix from the column lists of its rows. Repeated columns
    within a row are kept once.

    @param rows: rows[i] lists the nonzero columns of row i
    @return: sparse matrix
    """
    m = len(rows)
    rows = [list(dict.fromkeys(int(j) for j in row)) for row in rows]
    A = hr_spalloc(m, sum(len(row) for row in rows))
    nz = 0
    for i, row in enumerate(rows):
        A.rowptr[i] = nz
        for j in row:
            if j < 0 or j >= m:
                raise ValueError("column %d of row %d is outside a %d-by-%d matrix" % (j, i, m, m))
            A.colind[nz] = j
            nz += 1
        A.rowlen[i] = nz - A.rowptr[i]
    A.nz = nz
    hr_sprealloc(A, 0)
    return A


def hr_from_dense(D):
    """Builds a matrix from the nonzero pattern of a square 2-D array.
    """
    D = np.asarray(D)
    if D.ndim != 2 or D.shape[0] != D.shape[1]:
        raise ValueError("matrix is not square: shape %s" % (D.shape,))
    return hr_from_rows([np.flatnonzero(D[i]) for i in range(D.shape[0])])


def hr_to_dense(A):
    """Returns the pattern of A in its current (logical) order as a dense
    boolean array.
    """
    D = np.zeros((A.m, A.m), dtype=bool)
    cinv = hr_pinv(A.colorder)
    for ii in range(A.m):
        D[ii, cinv[_hr_row(A, A.roworder[ii])]] = True
    return D


def hr_pinv(p):
    """Inverts a permutation vector. Returns pinv[i] = k if p[k] = i on
    input.

    @param p: a permutation vector
    @return: pinv
    """
    pinv = np.empty_like(p)
    pinv[p] = np.arange(p.size, dtype=p.dtype)
    return pinv


def _hr_row(A, i):
    ptr = A.rowptr[i]
    return A.colind[ptr:ptr + A.rowlen[i]]


def _hr_find(value, vec, lo, hi):
    """Position of value in vec[lo:hi], None if absent.
    """
    hits = np.flatnonzero(vec[lo:hi] == value)
    return lo + int(hits[0]) if hits.size else None


def hr_isnz(A, row, col):
    """Returns true if A(row,col) is nonzero. The row slice is unsorted so
    this is a linear search.

    @param A: sparse matrix
    @param row: logical row
    @param col: logical column
    @return: true if the entry is present, false otherwise
    """
    i = A.roworder[row]
    ptr = A.rowptr[i]
    return _hr_find(A.colorder[col], A.colind, ptr, ptr + A.rowlen[i]) is not None


def hr_rownnz(A, row, lo, hi):
    """Counts the entries of a row whose physical column lies in [lo, hi).

    @param A: sparse matrix
    @param row: logical row
    @param lo: first physical column
    @param hi: one past the last physical column
    @return: number of entries in range
    """
    cols = _hr_row(A, A.roworder[row])
    return int(np.count_nonzero((cols >= lo) & (cols < hi)))


def hr_minnz(A):
    """Returns the smallest number of entries in any row, 0 if A is empty.
    """
    return int(A.rowlen.min()) if A.m > 0 else 0


def hr_swaprows(A, row1, row2):
    A.roworder[[row1, row2]] = A.roworder[[row2, row1]]


def hr_swapcols(A, col1, col2):
    A.colorder[[col1, col2]] = A.colorder[[col2, col1]]


def _hr_move(order, frm, to):
    if frm == to:
        return
    value = order[frm]
    if frm < to:
        order[frm:to] = order[frm + 1:to + 1]
    else:
        order[to + 1:frm + 1] = order[to:frm]
    order[to] = value


def hr_moverow(A, frm, to):
    """Moves logical row frm to position to, shifting the rows in between
    by one.
    """
    _hr_move(A.roworder, frm, to)


def hr_movecol(A, frm, to):
    """Moves logical column frm to position to, shifting the columns in
    between by one.
    """
    _hr_move(A.colorder, frm, to)


def hr_check(A):
    """Checks the invariants of A: both orders are permutations, nz matches
    the row lengths and the active submatrix is within bounds.

    @param A: sparse matrix
    @return: true if A is consistent, false otherwise
    """
    if A is None:
        return False
    m = A.m
    identity = np.arange(m)
    if len(A.roworder) != m or not np.array_equal(np.sort(A.roworder), identity):
        return False
    if len(A.colorder) != m or not np.array_equal(np.sort(A.colorder), identity):
        return False
    if A.nz != int(A.rowlen.sum()) or len(A.colind) < A.nz:
        return False
    if m > 0 and np.any(A.rowptr + A.rowlen > A.nz):
        return False
    p, q = A.active.p, A.active.q
    return 0 <= p and 0 <= q and p + q <= m


# Hellerman-Rarick transform.

def hr_transform(A):
    """Permutes A into Hellerman-Rarick form. On return A.active.p rows and
    columns form lower block-triangular diagonal blocks and the last
    A.active.q columns are the border (spikes).

    Each block starts from the active rows with the fewest entries in the
    active non-pivot columns. A singleton row puts its column on the
    diagonal. Otherwise the column shared by most of those rows is taken as
    a tentative pivot until the block is full, and the whole block becomes
    border. A block only gets a diagonal pivot when it opens on a singleton
    row.

    @param A: sparse matrix, orders are modified
    @return: A
    """
    m = A.m
    S = A.active
    S.p = S.q = 0
    # entries grouped by physical row, whatever the layout of colind
    ent_row = np.repeat(np.arange(m, dtype=np.intp), A.rowlen)
    start = np.repeat(A.rowptr - (np.cumsum(A.rowlen) - A.rowlen), A.rowlen)
    ent_col = A.colind[start + np.arange(A.nz, dtype=np.intp)]

    n_nz = ialloc(m) # restricted count per active row
    exhausted = np.zeros(m, dtype=bool) # rows without active non-pivot entries
    n_intersect = ialloc(m) # intersections per active non-pivot column
    colmask = np.zeros(m, dtype=bool) # active non-pivot physical columns
    rowmask = np.zeros(m, dtype=bool) # physical rows with the minimal count
    is_pivot = np.zeros(m, dtype=bool) # logical pivot columns of the current block
    pivot_cols = []
    while S.p + S.q < m:
        p, q = S.p, S.q
        logger.debug("%5.1f%%", 100.0 * (p + q) / m)
        del pivot_cols[:]
        is_pivot[:] = False
        bsize = 0
        singleton = False
        while True:
            span = np.arange(p, m - q, dtype=np.intp)
            a_cols = span[~is_pivot[p:m - q]]
            phys_cols = A.colorder[a_cols]
            colmask[:] = False
            colmask[phys_cols] = True
            hits = colmask[ent_col]
            numrows = m - p # row k is logical row p + k

            counts = n_nz[:numrows]
            counts[:] = np.bincount(ent_row[hits], minlength=m)[A.roworder[p:]]
            empty = exhausted[:numrows]
            empty[:] = counts == 0

            # exhausted rows sort after every counted row
            rank = np.lexsort((counts, empty))
            first = rank[0]
            mincount = None if empty[first] else int(counts[first])
            if mincount is None:
                minimal = rank[empty[rank]]
            else:
                minimal = rank[~empty[rank] & (counts[rank] == mincount)]

            if not pivot_cols:
                bsize = m - p - q if mincount is None else min(mincount, m - p - q)
                singleton = mincount == 1

            rowmask[:] = False
            rowmask[A.roworder[p + minimal]] = True
            inter = n_intersect[:len(a_cols)]
            inter[:] = np.bincount(ent_col[hits & rowmask[ent_row]], minlength=m)[phys_cols]

            t = np.argsort(inter, kind="stable")[-1]
            pivot_cols.append(int(a_cols[t]))
            is_pivot[a_cols[t]] = True

            if mincount == 1 or len(pivot_cols) == bsize:
                break

        s = min(int(inter[t]), bsize) if singleton else 0
        spikes = bsize - s
        assert len(pivot_cols) == bsize

        pcol = A.colorder[pivot_cols[-1]]
        rows = []
        for k in minimal:
            if len(rows) == s:
                break
            i = A.roworder[p + k]
            if _hr_find(pcol, A.colind, A.rowptr[i], A.rowptr[i] + A.rowlen[i]) is not None:
                rows.append(i)
        assert len(rows) == s
        pivots = [A.colorder[j] for j in pivot_cols] # physical

        for i in rows: # singleton rows to the front
            hr_moverow(A, _hr_find(i, A.roworder, p, m), p)
        for j in reversed(pivots[len(pivots) - s:]): # their columns to the front
            hr_movecol(A, _hr_find(j, A.colorder, p, m - q), p)
        for j in pivots[:spikes]: # spikes to the border
            hr_movecol(A, _hr_find(j, A.colorder, p, m - q), m - q - 1)

        S.p += s
        S.q += spikes
        logger.debug("block at %d: %d singleton row(s), %d spike(s)", p, s, spikes)
        assert hr_check(A)

    logger.info("HR form: %d diagonal, %d border column(s)", S.p, S.q)
    return A


# Binary PBM input and output.

def hr_load(f):
    """Loads a matrix from a binary PBM (P4) stream. Each set bit is an
    entry; bits are read most significant first and every row is padded to
    a whole byte.

    @param f: binary file-like object
    @return: sparse matrix with identity orders
    @raise DecodeError: on a bad header or truncated data
    """
    has_magic = False
    while True:
        line = f.readline(HR_MAX_LINE)
        if not line:
            raise DecodeError("unexpected EOF while parsing header")
        if len(line) == HR_MAX_LINE and not line.endswith(b"\n"):
            raise DecodeError("header line too long (more than %d bytes)" % HR_MAX_LINE)
        if line.startswith(b"#") or not line.strip():
            continue
        if not has_magic:
            if line.strip() != HR_MAGIC:
                raise DecodeError("unsupported file format (expected binary PBM)")
            has_magic = True
            continue
        tokens = line.split()
        try:
            m, n = [int(t) for t in tokens]
        except ValueError:
            raise DecodeError("malformed image dimensions: %r" % line.strip())
        break
    if m <= 0 or n <= 0:
        raise DecodeError("image dimensions must be positive")
    if m != n:
        raise DecodeError("image/matrix is not square (%d-by-%d)" % (n, m))

    b = (m + 7) // 8 # bytes per row
    try:
        A = hr_spalloc(m, HR_BLOCK_SIZE)
        nz = 0
        for i in range(m):
            data = f.read(b)
            if len(data) != b:
                raise DecodeError("unexpected EOF in row %d of %d" % (i, m))
            bits = np.unpackbits(np.frombuffer(data, dtype=np.uint8))[:m]
            cols = np.flatnonzero(bits)
            nzmax = len(A.colind)
            while nz + cols.size > nzmax:
                nzmax += HR_BLOCK_SIZE
            if nzmax != len(A.colind):
                hr_sprealloc(A, nzmax)
            A.rowptr[i] = nz
            A.colind[nz:nz + cols.size] = cols
            A.rowlen[i] = cols.size
            nz += cols.size
    except MemoryError:
        raise DecodeError("unable to allocate memory for a %d-by-%d matrix" % (m, m))
    A.nz = nz
    hr_sprealloc(A, 0)
    logger.info("loaded %d-by-%d matrix with density %.5f", m, m, float(nz) / (m * m))
    logger.info("minimum number of entries per row: %d", hr_minnz(A))
    return A


def hr_load_file(filename):
    """Loads a matrix from a binary PBM file.
    """
    with open(filename, "rb") as fd:
        return hr_load(fd)


def hr_write(f, A):
    """Writes A in its current order as a binary PBM (P4) image.

    @param f: binary file-like object
    @param A: sparse matrix
    @raise EncodeError: if the stream cannot be written
    """
    m = A.m
    b = (m + 7) // 8 # bytes per row
    cinv = hr_pinv(A.colorder)
    try:
        f.write(b"%s\n# %s\n%d %d\n" % (HR_MAGIC, HR_HEADER_COMMENT.encode("ascii"), m, m))
        for ii in range(m):
            bits = np.empty(8 * b, dtype=np.uint8)
            bits[:m] = 0
            bits[cinv[_hr_row(A, A.roworder[ii])]] = 1
            bits[m:] = 0 # pad the last byte of the row
            block = np.packbits(bits)
            assert block.size == b
            f.write(block.tobytes())
    except (OSError, ValueError) as e:
        raise EncodeError("unable to write matrix: %s" % e)


def hr_write_file(filename, A):
    """Writes A to a binary PBM file.
    """
    with open(filename, "wb") as fd:
        hr_write(fd, A)


# Text output.

def _hr_mark(ii, jj, m, S):
    if jj >= m - S.q:
        return "B" # border
    if ii >= S.p and jj >= S.p:
        return "X" # active submatrix
    return "+"


def hr_print_dense(A, out=None):
    """Prints A in its current order, one line per row. Entries show as '+'
    in the diagonal blocks, 'X' in the active submatrix and 'B' in the
    border.

    @param A: sparse matrix
    @param out: text stream, standard output if None
    """
    out = sys.stdout if out is None else out
    D = hr_to_dense(A)
    for ii in range(A.m):
        out.write("".join("%s " % (_hr_mark(ii, jj, A.m, A.active) if D[ii, jj] else " ")
                          for jj in range(A.m)))
        out.write("\n")


def hr_print(A, brief, out=None):
    """Prints a sparse matrix.

    @param A: sparse matrix
    @param brief: print all of A if false, a few entries otherwise
    @param out: text stream, standard output if None
    @return: true if successful, false on error
    """
    out = sys.stdout if out is None else out
    if A is None:
        out.write("(null)\n")
        return False
    m, nz = A.m, A.nz
    out.write("HRSparse.py Version %d.%d.%d, %s.  %s\n" % (HR_VER, HR_SUBVER,
            HR_SUBSUB, HR_DATE, HR_COPYRIGHT))
    out.write("%d-by-%d, nnz: %d, density: %g, p: %d, q: %d\n" % (m, m, nz,
            float(nz) / (m * m) if m else 0.0, A.active.p, A.active.q))
    cinv = hr_pinv(A.colorder)
    count = 0
    for ii in range(m):
        i = A.roworder[ii]
        out.write("    row %d : locations %d to %d\n" % (ii, A.rowptr[i],
                A.rowptr[i] + A.rowlen[i] - 1))
        for j in _hr_row(A, i):
            out.write("      %d\n" % cinv[j])
            count += 1
            if brief and count > 20:
                out.write("  ...\n")
                return True
    return True


def main(argv=None):
    """Command-line driver: load, transform, then write or print.

    @param argv: arguments, sys.argv[1:] if None
    @return: exit status
    """
    parser = argparse.ArgumentParser(prog="hrsparse",
            description="Reorder a binary PBM sparse matrix into Hellerman-Rarick form.")
    parser.add_argument("input", nargs="?",
            help="input PBM file (default: standard input)")
    parser.add_argument("output", nargs="?",
            help="output PBM file (default: print the matrix as text)")
    parser.add_argument("-v", "--verbose", action="count", default=0,
            help="more diagnostics on standard error (repeatable)")
    parser.add_argument("-q", "--quiet", action="store_true",
            help="report errors only")
    args = parser.parse_args(argv)

    if args.quiet:
        level = logging.ERROR
    else:
        level = max(logging.DEBUG, logging.WARNING - 10 * args.verbose)
    logging.basicConfig(level=level, stream=sys.stderr,
            format="(%(levelname).1s) %(message)s")

    try:
        if args.input is None:
            A = hr_load(sys.stdin.buffer)
        else:
            A = hr_load_file(args.input)
    except OSError as e:
        logger.error("could not open %s for reading: %s", args.input or "<stdin>", e.strerror)
        return 1
    except DecodeError as e:
        logger.error("%s", e)
        return 1

    hr_transform(A)

    if args.output is None:
        hr_print_dense(A)
        return 0
    try:
        hr_write_file(args.output, A)
    except OSError as e:
        logger.error("could not open %s for writing: %s", args.output, e.strerror)
        return 1
    except EncodeError as e:
        logger.error("%s", e)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
