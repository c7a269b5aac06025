from __future__ import annotations

from dataclasses import dataclass, field

from timebank.services.calc_types import MINUTES_PER_DAY, BookingInput, Category

WARN_CROSS_MIDNIGHT = "CROSS_MIDNIGHT"


@dataclass(frozen=True)
class BookingPair:
    in_booking: BookingInput
    out_booking: BookingInput
    category: Category
    duration: int

    @property
    def start(self) -> int:
        if self.category == "WORK":
            return self.in_booking.time
        return self.out_booking.time

    @property
    def end(self) -> int:
        return self.start + self.duration


@dataclass
class PairingResult:
    pairs: list[BookingPair] = field(default_factory=list)
    unpaired_in_ids: list[int] = field(default_factory=list)
    unpaired_out_ids: list[int] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


def _span(start: int, end: int) -> int:
    if end < start:
        end += MINUTES_PER_DAY
    return end - start


def _make_pair(in_booking: BookingInput, out_booking: BookingInput, category: Category) -> BookingPair:
    # work runs arrival -> departure, a break runs break start (OUT) -> break end (IN)
    if category == "WORK":
        duration = _span(in_booking.time, out_booking.time)
    else:
        duration = _span(out_booking.time, in_booking.time)
    return BookingPair(in_booking=in_booking, out_booking=out_booking, category=category, duration=duration)


def _crosses_midnight(pair: BookingPair) -> bool:
    if pair.category == "WORK":
        return pair.in_booking.time > pair.out_booking.time
    return pair.out_booking.time > pair.in_booking.time


def _pair_category(bookings: list[BookingInput], category: Category, result: PairingResult) -> None:
    ins = sorted((b for b in bookings if b.direction == "IN"), key=lambda b: b.time)
    outs = sorted((b for b in bookings if b.direction == "OUT"), key=lambda b: b.time)
    outs_by_id = {b.id: b for b in outs}
    paired_in: set[int] = set()
    paired_out: set[int] = set()

    def _add(in_booking: BookingInput, out_booking: BookingInput) -> BookingPair:
        pair = _make_pair(in_booking, out_booking, category)
        result.pairs.append(pair)
        paired_in.add(in_booking.id)
        paired_out.add(out_booking.id)
        return pair

    for booking in ins:
        if booking.pair_id is None or booking.pair_id in paired_out:
            continue
        counterpart = outs_by_id.get(booking.pair_id)
        if counterpart is None:
            continue
        pair = _add(booking, counterpart)
        if _crosses_midnight(pair):
            result.warnings.append(WARN_CROSS_MIDNIGHT)

    if category == "WORK":
        for booking in ins:
            if booking.id in paired_in:
                continue
            candidate = next(
                (out for out in outs if out.id not in paired_out and out.time >= booking.time),
                None,
            )
            if candidate is not None:
                _add(booking, candidate)

        for booking in ins:
            if booking.id in paired_in:
                continue
            candidate = next(
                (out for out in outs if out.id not in paired_out and out.time < booking.time),
                None,
            )
            if candidate is not None:
                _add(booking, candidate)
                result.warnings.append(WARN_CROSS_MIDNIGHT)
    else:
        for booking in outs:
            if booking.id in paired_out:
                continue
            candidate = next(
                (item for item in ins if item.id not in paired_in and item.time >= booking.time),
                None,
            )
            if candidate is not None:
                _add(candidate, booking)

    result.unpaired_in_ids.extend(b.id for b in ins if b.id not in paired_in)
    result.unpaired_out_ids.extend(b.id for b in outs if b.id not in paired_out)


def pair_bookings(bookings: list[BookingInput]) -> PairingResult:
    result = PairingResult()
    if not bookings:
        return result
    _pair_category([b for b in bookings if b.category == "WORK"], "WORK", result)
    _pair_category([b for b in bookings if b.category == "BREAK"], "BREAK", result)
    return result


def gross_minutes(pairs: list[BookingPair]) -> int:
    return sum(pair.duration for pair in pairs if pair.category == "WORK")


def recorded_break_minutes(pairs: list[BookingPair]) -> int:
    return sum(pair.duration for pair in pairs if pair.category == "BREAK")


def first_come(bookings: list[BookingInput]) -> int | None:
    times = [b.time for b in bookings if b.category == "WORK" and b.direction == "IN"]
    return min(times) if times else None


def last_go(bookings: list[BookingInput]) -> int | None:
    times = [b.time for b in bookings if b.category == "WORK" and b.direction == "OUT"]
    return max(times) if times else None
