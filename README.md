# arthaledger

A small personal-finance ledger library. It keeps income, expense and
transfer transactions against accounts, organises them into categories,
assigns categories automatically from keyword rules, and builds monthly
reports. Storage is SQLite through the standard library `sqlite3` module;
the only third-party dependency is PyJWT, used to check bearer tokens.

## Modules

| Module | Purpose |
| --- | --- |
| `arthaledger.categorizer` | Pure keyword engine: `Rule` and `categorize(description, rules)` |
| `arthaledger.database` | `connect(path, echo)`, the `atomic(connection)` context manager and `RecordNotFoundError` |
| `arthaledger.categories` | Category models, request/response types and `CategoryService` |
| `arthaledger.category_store` | `CategoryStore`, SQLite storage for the `categories` table |
| `arthaledger.rules` | Rule models, `is_unique_violation` and `RuleService` |
| `arthaledger.rule_store` | `RuleStore`, SQLite storage for the `categorization_rules` table |
| `arthaledger.reports` | Report models, `validate_year_month` and `ReportService` |
| `arthaledger.report_store` | `ReportStore` aggregation queries and `round_two` |
| `arthaledger.transactions` | Transaction models, filters, pagination and response types |
| `arthaledger.transaction_store` | `TransactionStore` and `build_pagination` |
| `arthaledger.transaction_service` | `TransactionService`: balances, transfer pairs, ownership checks |
| `arthaledger.auth` | `authenticate(authorization, secret, blacklist)`, `Claims` and `AuthenticationError` |

## Database

`connect()` opens an SQLite database (in memory by default) in autocommit
mode, with rows addressable by column name. `atomic(connection)` runs a
block in one transaction, committing on success and rolling back on error;
nested use opens a savepoint. Each store has a `create_schema()` method
that creates its table and indexes if they are missing.

```python
from arthaledger.database import connect
from arthaledger.category_store import CategoryStore
from arthaledger.categories import CategoryService, CreateCategoryRequest

connection = connect()
store = CategoryStore(connection)
store.create_schema()

service = CategoryService(store)
coffee = service.create(1, CreateCategoryRequest(name="Coffee", type="expense"))
service.list(1).total    # 1
```

Stores raise `RecordNotFoundError` when a lookup finds no row.

## Auto-categorization

A rule maps a keyword to a category. Matching ignores case and looks for the
keyword anywhere in the description. When several rules match, the highest
priority wins; on equal priority, the lower id wins. `categorize` returns
the category id, or `None` when nothing matches.

```python
from arthaledger.categorizer import Rule, categorize

rules = [
    Rule(id=1, keyword="swiggy", category_id=10, priority=5),
    Rule(id=4, keyword="salary", category_id=30, priority=10),
    Rule(id=5, keyword="SALARY", category_id=31, priority=9),
]

categorize("SALARY CREDIT HDFC", rules)   # 30
categorize("ATM withdrawal", rules)       # None
```

`RuleService` creates, lists and deletes a user's rules and hands them to
the engine through `categorizer_rules(user_id)`. `RuleStore` keeps keywords
unique per user regardless of case; a repeated keyword makes
`RuleService.create` raise `DuplicateKeywordError`. Deleting a rule the
user does not own raises `RuleNotFoundError`. Both are subclasses of
`RuleError`.

## Categories

- **System categories** have no owner. Every user can read them; no one can
  change or delete them.
- **User categories** belong to one user, who alone can see, change or
  delete them.

Listing returns the system categories together with the user's own,
optionally limited to `"income"` or `"expense"`. A category owned by someone
else is reported as not found. `CategoryService` raises subclasses of
`CategoryError`: `CategoryNotFoundError`, `SystemCategoryError`,
`InvalidCategoryTypeError` and `NoUpdatesError`.

## Transactions and balances

`TransactionService(repo, account_repo, rules_provider)` writes rows through
a `TransactionStore` and adjusts balances through `account_repo` inside the
same database transaction:

- **Income** adds its amount to the balance; **expense** subtracts it.
- **Transfer** is stored as two linked rows: an expense on the source
  account and an income on the destination account.
- **Deleting** is a soft delete that reverses the balance effect; deleting
  one leg of a transfer also deletes the other.
- **Updating** a transfer is refused with `TransferNotEditableError`.
- When a transaction is created without a category and `rules_provider` is
  given (for example a `RuleService`), the user's rules pick one.

`account_repo` is any object with `find_by_id_and_user_id(account_id,
user_id)` (returning `None` or raising `RecordNotFoundError` when the
account is not the user's) and `update_balance(account_id, delta)`:

```python
from arthaledger.database import connect
from arthaledger.transaction_service import TransactionService
from arthaledger.transaction_store import TransactionStore
from arthaledger.transactions import CreateTransactionRequest


class Accounts:
    def __init__(self):
        self.balances = {1: 0.0, 2: 0.0}

    def find_by_id_and_user_id(self, account_id, user_id):
        return self.balances.get(account_id)

    def update_balance(self, account_id, delta):
        self.balances[account_id] += delta


store = TransactionStore(connect())
store.create_schema()
accounts = Accounts()
service = TransactionService(store, accounts, None)

service.create(1, CreateTransactionRequest(
    account_id=1, amount=500.0, type="income",
    description="Salary", date="2024-01-31",
))
service.create(1, CreateTransactionRequest(
    account_id=1, to_account_id=2, amount=200.0, type="transfer",
    description="Savings", date="2024-02-01",
))
accounts.balances    # {1: 300.0, 2: 200.0}
```

`list(user_id, filters)` takes a `TransactionFilter` (account, category,
type, date range, amount range, page, limit) and returns a page, newest
first, with `Pagination` metadata; the limit is capped at 100. Failures are
subclasses of `TransactionError`: `TransactionNotFoundError`,
`InvalidTransactionTypeError`, `TransferRequiresToAccountError`,
`SameAccountTransferError`, `InvalidDateError`, `TransferNotEditableError`,
`NoUpdatesError` and `AccountNotFoundError`.

## Reports

`ReportService(ReportStore(connection))` offers:

- `get_monthly_summary(user_id, year, month)`: total income, total expense,
  net savings and the expenses by category with each one's percentage;
- `get_trend(user_id, months)`: income, expense and net for each month with
  activity in the last 1 to 24 months, oldest first;
- `get_export_rows(user_id, year, month)`: the month's transactions with
  category and account names, as `ExportRow` values.

Years must be between 2000 and 2100, months between 1 and 12, and the month
must not be in the future. The errors are `InvalidYearError`,
`InvalidMonthError`, `InvalidMonthsError` and `FutureMonthError`, all
subclasses of `ReportError`. Amounts are rounded with `round_two`, which
rounds halves away from zero.

`ReportStore` reads the `transactions` and `categories` tables and joins an
`accounts` table with `id` and `name` columns for the export.

## Authentication

`authenticate(authorization, secret, blacklist)` checks an `Authorization`
header value of the form `Bearer <token>`: the token must be an
HMAC-signed JWT (HS256, HS384 or HS512) that verifies against `secret` and
has not expired, and its JWT ID must not be in `blacklist`. If the
blacklist is `None` the revocation check is skipped; if looking it up
fails, the token is accepted. On success it returns `Claims` (`user_id`,
`email`, `jti`, `expires_at`); otherwise it raises `AuthenticationError`,
whose `status_code` is 401.

```python
from arthaledger.auth import AuthenticationError, authenticate

try:
    claims = authenticate("Bearer token", "secret", set())
except AuthenticationError as exc:
    print(exc)    # Invalid or expired token
```

## What the package does not do

- There is no HTTP server, no routes and no command-line program; the
  services are meant to be called from your own application.
- There is no account storage. Accounts and their balances are supplied by
  the caller through the `account_repo` object, and the `accounts` table
  read by `ReportStore` must be created by the caller.
- Export rows are returned as values; writing them out as a CSV file is left
  to the caller.
- Token issuing, logout and the revocation store itself are not provided;
  `authenticate` only checks tokens.