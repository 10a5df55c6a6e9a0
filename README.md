# rmdb

This package holds parts of a small teaching relational database engine.
It has no third-party dependencies.

- `rmdb.client` is an interactive line client. It sends commands to a
  database server over TCP or a Unix domain socket and prints the replies.
- `rmdb.record_printer` draws result tables with fixed-width columns into a
  bounded reply buffer. The classes are `OutputBuffer` and `RecordPrinter`.
- `rmdb.index_format` describes the on-disk format of B+ tree index files:
  - `IndexFileHeader` and `IndexPageHeader`, with their binary encodings
  - `ix_compare` and `compare_keys` for key comparison
  - `index_name` for index file names
  - `btree_order` for node capacity
- `rmdb.analyzer` checks queries against a table catalog (`Catalog`,
  `Analyzer`). It fills in the table of unqualified column names. It raises
  `ColumnNotFoundError`, `AmbiguousColumnError`, `TableNotFoundError` and
  `IncompatibleTypeError`.
- `rmdb.plan` defines the plan nodes: `ScanPlan`, `JoinPlan`, `ProjectionPlan`,
  `SortPlan`, `OtherPlan` and `SetKnobPlan`.
- `rmdb.planner` builds plans from analyzed queries (`Planner`, `pop_conds`,
  `push_conds`). It chooses an index scan when an index matches the equality
  conditions exactly, joins the tables and adds sort and projection nodes.
- `rmdb.execution` does three things:
  - lays out projected columns (`find_column`, `projection_layout`)
  - formats stored values (`format_column`)
  - prints result tables (`select_from`) and help text (`write_help`)

## Installing

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## The client

```
rmdb-client                      # connect to 127.0.0.1:8765
rmdb-client -h 10.0.0.5 -p 9000  # another host and port
rmdb-client -s /tmp/rmdb.sock    # a Unix domain socket instead of TCP
```

The prompt is `Rucbase> `. The client sends each non-empty line to the server
as one NUL-terminated command and prints the reply, up to its first NUL byte.
To quit:

- type `exit`, `exit;`, `bye` or `bye;`
- or send end-of-file

If the server closes the connection, the client stops. Where `readline` is
available, the lines you type go into its history.

## Using the library

The example below defines a table in a catalog, analyzes a query against it
and builds a plan. It then prints records with `select_from`.

```python
import struct

from rmdb.analyzer import Analyzer, Catalog, CompOp, Condition, TabCol
from rmdb.execution import select_from
from rmdb.index_format import ColType
from rmdb.planner import Planner
from rmdb.plan import PlanTag
from rmdb.record_printer import OutputBuffer

catalog = Catalog()
cols = catalog.add_table("t", [("id", ColType.TYPE_INT, 4), ("name", ColType.TYPE_STRING, 16)])
catalog.add_index("t", ["id"])

# SELECT * FROM t WHERE id = 1
query = Analyzer(catalog).analyze_select(
    ["t"], [], [Condition(TabCol("", "id"), CompOp.EQ, rhs_val=1)]
)
plan = Planner(catalog).generate_select_plan(query)
assert plan.subplan.tag is PlanTag.INDEX_SCAN

out = OutputBuffer()
records = [struct.pack("<i16s", 1, b"alice")]
select_from(cols, records, ["id", "name"], out, output_path=None)
print(out.getvalue())
```

By default, `select_from` also appends every row it prints to `output.txt`.
Pass `output_path=None` to turn that off.

`OutputBuffer` holds 8192 bytes by default. It keeps 40 bytes free for the
record-count footer. Once a write no longer fits, further table output is
dropped and the footer begins with `... ...`.

## What this package does not do

This package is not a working database:

- It has no SQL parser and no database server. The client needs a separate
  server to talk to.
- It has no storage: no table record files, no buffer pool and no B+ tree
  insert, delete or search. `rmdb.index_format` covers only header layouts,
  key comparison and sizing.
- Plans are data structures only. Nothing executes scans, joins or sorts, and
  there are no transactions. `select_from` prints the records it is given.