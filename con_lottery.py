# Owner-run lottery paid in an XSC001 token.
#
# WARNING: winner selection hashes block-level values (time, block seeded
# random bits) together with the player list. Anyone who can observe or
# influence those inputs before the transaction, including the owner and
# block producers, can predict the outcome. Do not use for real value.
#
# LotteryClosed carries the number of ticket entries at close; events
# without data are not emitted by this contract.
random.seed()

BPS_DENOMINATOR = 10000

# State Variables
owner = Variable()
token_contract = Variable()
ticket_price = Variable()
owner_fee_bps = Variable()
is_open = Variable()
players = Variable()
tickets_bought = Hash(default_value=0)
round_number = Variable()
last_winner = Variable()

# Events
LotteryOpenedEvent = LogEvent(
    event="LotteryOpened",
    params={
        "ticket_price": {"type": (int, float, decimal)},
        "owner_fee_bps": {"type": int}
    }
)

LotteryClosedEvent = LogEvent(
    event="LotteryClosed",
    params={
        "players_count": {"type": int}
    }
)

TicketsPurchasedEvent = LogEvent(
    event="TicketsPurchased",
    params={
        "buyer": {"type": str, "idx": True},
        "num_tickets": {"type": int}
    }
)

WinnerPickedEvent = LogEvent(
    event="WinnerPicked",
    params={
        "winner": {"type": str, "idx": True},
        "amount_won": {"type": (int, float, decimal)}
    }
)

OwnerWithdrawnEvent = LogEvent(
    event="OwnerWithdrawn",
    params={
        "owner": {"type": str, "idx": True},
        "amount": {"type": (int, float, decimal)}
    }
)


@construct
def seed(initial_ticket_price: float, initial_owner_fee_bps: int, token_name: str = 'currency'):
    assert_valid_config(initial_ticket_price, initial_owner_fee_bps)

    owner.set(ctx.caller)
    token_contract.set(token_name)
    ticket_price.set(initial_ticket_price)
    owner_fee_bps.set(initial_owner_fee_bps)
    is_open.set(False)
    players.set([])
    round_number.set(0)
    last_winner.set(None)


# Helper functions

def assert_is_owner():
    assert ctx.caller == owner.get(), "Only owner"


def assert_valid_config(price: float, fee_bps: int):
    assert price > 0, "Ticket price must be positive"
    assert fee_bps >= 0 and fee_bps <= BPS_DENOMINATOR, "Fee must be between 0 and 10000 bps"


def to_decimal(value):
    return decimal(str(value))


def token():
    return importlib.import_module(token_contract.get())


def held_balance():
    return token().balance_of(address=ctx.this)


def enter_players(amount: float):
    price = ticket_price.get()

    assert amount >= price, "Send at least ticket price"
    assert amount % price == 0, "Send multiple of ticket price"

    num_tickets = int(amount // price)

    token().transfer_from(
        amount=amount,
        to=ctx.this,
        main_account=ctx.caller
    )

    entries = players.get()
    entries.extend([ctx.caller] * num_tickets)
    players.set(entries)

    tickets_bought[ctx.caller] += num_tickets

    TicketsPurchasedEvent({
        "buyer": ctx.caller,
        "num_tickets": num_tickets
    })

    return num_tickets


def select_winner(entries: list):
    # Not secure, see module header
    digest = hashlib.sha256(
        str(now) + str(random.getrandbits(128)) + "".join(entries)
    )
    return entries[int(digest, 16) % len(entries)]


# Owner functions

@export
def open_lottery(new_ticket_price: float, new_owner_fee_bps: int):
    assert_is_owner()
    assert not is_open.get(), "Lottery already open"
    assert_valid_config(new_ticket_price, new_owner_fee_bps)

    ticket_price.set(new_ticket_price)
    owner_fee_bps.set(new_owner_fee_bps)
    # tickets_bought is only cleared for players of a round that pays out
    players.set([])
    is_open.set(True)
    round_number.set(round_number.get() + 1)

    LotteryOpenedEvent({
        "ticket_price": new_ticket_price,
        "owner_fee_bps": new_owner_fee_bps
    })


@export
def close_lottery():
    assert_is_owner()
    assert is_open.get(), "Lottery not open"

    is_open.set(False)

    LotteryClosedEvent({
        "players_count": len(players.get())
    })


@export
def pick_winner():
    assert_is_owner()
    assert not is_open.get(), "Close lottery first"

    entries = players.get()
    assert len(entries) > 0, "No players"

    pot = to_decimal(held_balance())
    assert pot > 0, "No balance"

    winner = select_winner(entries)

    # Exact at token precision, no rounding to whole units
    owner_fee = pot * owner_fee_bps.get() / BPS_DENOMINATOR
    winner_amount = pot - owner_fee

    # Reset before paying out. Zero amounts are not transferred since
    # XSC001 tokens reject them; this covers a zero fee and a 10000 bps fee.
    for player in entries:
        tickets_bought[player] = 0
    players.set([])

    last_winner.set({
        "winner": winner,
        "amount_won": winner_amount,
        "owner_fee": owner_fee,
        "round_number": round_number.get()
    })

    if owner_fee > 0:
        token().transfer(amount=owner_fee, to=owner.get())

    if winner_amount > 0:
        token().transfer(amount=winner_amount, to=winner)

    WinnerPickedEvent({
        "winner": winner,
        "amount_won": winner_amount
    })

    return winner


@export
def emergency_withdraw():
    assert_is_owner()

    amount = held_balance()
    assert amount > 0, "No balance"

    token().transfer(amount=amount, to=owner.get())

    OwnerWithdrawnEvent({
        "owner": owner.get(),
        "amount": amount
    })


# Player functions

@export
def buy_tickets(amount: float):
    assert is_open.get(), "Lottery not open"
    return enter_players(amount)


@export
def deposit(amount: float):
    # Plain payment with no operation attached
    assert is_open.get(), "Lottery closed"
    return enter_players(amount)


# Read functions

@export
def get_players_count():
    return len(players.get())


@export
def get_players():
    # Returns every ticket entry; grows with each ticket sold
    return players.get()


@export
def get_tickets_bought(address: str):
    return tickets_bought[address]


@export
def get_owner():
    return owner.get()


@export
def get_ticket_price():
    return ticket_price.get()


@export
def get_owner_fee_bps():
    return owner_fee_bps.get()


@export
def get_is_open():
    return is_open.get()


@export
def get_pot():
    return held_balance()


@export
def get_lottery_status():
    return {
        "owner": owner.get(),
        "token_contract": token_contract.get(),
        "ticket_price": ticket_price.get(),
        "owner_fee_bps": owner_fee_bps.get(),
        "is_open": is_open.get(),
        "players_count": len(players.get()),
        "round_number": round_number.get(),
        "last_winner": last_winner.get()
    }
