import enum
from typing import List, Optional, Set


class CheckoutStep(str, enum.Enum):
    CONTACT = "contact"
    SHIPPING = "shipping"
    FFL = "ffl"
    PAYMENT = "payment"


def checkout_steps(requires_ffl: bool, has_non_ffl_items: bool) -> List[CheckoutStep]:
    """
    Firearms ship to a licensed dealer, everything else to the shopper:
    firearm-only carts skip shipping, carts without firearms skip the dealer step.
    """
    steps = [CheckoutStep.CONTACT]
    if has_non_ffl_items:
        steps.append(CheckoutStep.SHIPPING)
    if requires_ffl:
        steps.append(CheckoutStep.FFL)
    steps.append(CheckoutStep.PAYMENT)
    return steps


class CheckoutFlow:
    def __init__(self, requires_ffl: bool, has_non_ffl_items: bool):
        self.steps = checkout_steps(requires_ffl, has_non_ffl_items)
        self.current = CheckoutStep.CONTACT
        self.completed: Set[CheckoutStep] = set()

    def next_step(self, step: Optional[CheckoutStep] = None) -> Optional[CheckoutStep]:
        step = step or self.current
        if step not in self.steps:
            return None
        index = self.steps.index(step)
        return self.steps[index + 1] if index + 1 < len(self.steps) else None

    def mark_complete(self, step: CheckoutStep) -> None:
        self.completed.add(step)

    def advance(self) -> Optional[CheckoutStep]:
        nxt = self.next_step()
        if nxt is not None:
            self.mark_complete(self.current)
            self.current = nxt
        return nxt

    @property
    def ready_for_payment(self) -> bool:
        return self.current is CheckoutStep.PAYMENT and all(
            step in self.completed for step in self.steps if step is not CheckoutStep.PAYMENT
        )
