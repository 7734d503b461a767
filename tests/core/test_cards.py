"""Tests for Card and Shoe classes."""

import pytest
from collections import Counter
from random import Random

from blackjack.cards import (
    DECK_SIZE,
    RESHUFFLE_THRESHOLD,
    Card,
    Shoe,
    Rank,
    Suit,
    fresh_deck,
    shuffle,
)


class TestCard:
    """Tests for the Card class."""

    def test_card_creation(self):
        """Test creating a card."""
        card = Card(Rank.ACE, Suit.SPADES)
        assert card.rank == Rank.ACE
        assert card.suit == Suit.SPADES
        assert card.face_up

    def test_card_value(self):
        """Test card blackjack values."""
        assert Card(Rank.TWO, Suit.HEARTS).value == 2
        assert Card(Rank.NINE, Suit.HEARTS).value == 9
        assert Card(Rank.TEN, Suit.HEARTS).value == 10
        assert Card(Rank.JACK, Suit.HEARTS).value == 10
        assert Card(Rank.QUEEN, Suit.HEARTS).value == 10
        assert Card(Rank.KING, Suit.HEARTS).value == 10
        assert Card(Rank.ACE, Suit.HEARTS).value == 11

    def test_card_is_ace(self):
        """Test ace detection."""
        assert Card(Rank.ACE, Suit.SPADES).is_ace
        assert not Card(Rank.KING, Suit.SPADES).is_ace

    def test_card_from_string(self):
        """Test creating cards from strings."""
        assert Card.from_string("AS") == Card(Rank.ACE, Suit.SPADES)
        assert Card.from_string("2H") == Card(Rank.TWO, Suit.HEARTS)
        assert Card.from_string("10D") == Card(Rank.TEN, Suit.DIAMONDS)
        assert Card.from_string("KC") == Card(Rank.KING, Suit.CLUBS)
        assert Card.from_string("K♥") == Card(Rank.KING, Suit.HEARTS)

    def test_card_from_bad_string(self):
        """Test that unknown ranks and suits are rejected."""
        with pytest.raises(ValueError):
            Card.from_string("1S")
        with pytest.raises(ValueError):
            Card.from_string("AX")

    def test_face_down_card_hides_identity(self):
        """A face-down card prints as a placeholder until revealed."""
        card = Card(Rank.ACE, Suit.SPADES, face_up=False)
        assert str(card) == "??"

        card.reveal()
        assert card.face_up
        assert str(card) == "A♠"

    def test_orientation_ignored_for_equality(self):
        """Flipping a card does not change its identity."""
        up = Card(Rank.SEVEN, Suit.CLUBS)
        down = Card(Rank.SEVEN, Suit.CLUBS, face_up=False)
        assert up == down
        assert len({up, down}) == 1


class TestDeck:
    """Tests for deck construction and shuffling."""

    def test_fresh_deck_has_all_cards(self):
        """Test that a deck contains all 52 unique cards."""
        deck = fresh_deck()
        assert len(deck) == DECK_SIZE
        assert len(set(deck)) == DECK_SIZE
        assert all(card.face_up for card in deck)

    def test_shuffle_keeps_cards(self):
        """Test shuffling changes order but not contents."""
        deck = fresh_deck()
        order_before = list(deck)

        result = shuffle(deck, Random(42))

        assert result is deck
        assert set(order_before) == set(deck)
        assert order_before != deck

    def test_shuffle_is_reproducible(self):
        """Same seed, same order."""
        assert shuffle(fresh_deck(), Random(7)) == shuffle(fresh_deck(), Random(7))

    def test_shuffle_is_uniform(self):
        """Every card is equally likely at every position (chi-square)."""
        rng = Random(1234)
        trials = DECK_SIZE * 100
        counts = Counter()
        for _ in range(trials):
            counts.update(enumerate(shuffle(fresh_deck(), rng)))

        expected = trials / DECK_SIZE
        chi_square = sum(
            (counts[(position, card)] - expected) ** 2 / expected
            for position in range(DECK_SIZE)
            for card in fresh_deck()
        )

        # 51 * 51 = 2601 degrees of freedom (sd ~72); 3050 is over six sd out
        assert chi_square < 3050
        # First and last card drawn are both covered
        assert all(counts[(0, card)] > 0 and counts[(DECK_SIZE - 1, card)] > 0 for card in fresh_deck())


class TestShoe:
    """Tests for the Shoe class."""

    def test_new_shoe_is_full_and_shuffled(self, rng):
        """Test a new shoe holds one shuffled deck."""
        shoe = Shoe(rng=rng)
        assert len(shoe) == DECK_SIZE
        assert shoe.cards_dealt == 0
        assert shoe.reshuffle_count == 1
        assert list(shoe) != fresh_deck()

    def test_draw(self, rng):
        """Test drawing cards from the shoe."""
        shoe = Shoe(rng=rng)
        card = shoe.draw()
        assert isinstance(card, Card)
        assert card.face_up
        assert shoe.cards_remaining == 51
        assert shoe.cards_dealt == 1

    def test_draw_face_down(self, rng):
        """Test dealing a hole card."""
        shoe = Shoe(rng=rng)
        assert not shoe.draw(face_up=False).face_up

    def test_draw_order_from_explicit_cards(self):
        """The last card of an explicit order is drawn first."""
        shoe = Shoe(cards=[Card.from_string("2C"), Card.from_string("KH")])
        assert shoe.draw() == Card.from_string("KH")
        assert shoe.draw() == Card.from_string("2C")

    def test_draw_conserves_cards(self, rng):
        """Dealt plus remaining always make a whole deck."""
        shoe = Shoe(rng=rng)
        dealt = [shoe.draw() for _ in range(30)]
        assert len(dealt) + len(shoe) == DECK_SIZE
        assert set(dealt).isdisjoint(set(shoe))

    def test_draw_whole_deck_is_a_permutation(self, rng):
        """Drawing 52 cards yields every card exactly once."""
        shoe = Shoe(rng=rng)
        dealt = [shoe.draw() for _ in range(DECK_SIZE)]
        assert Counter(dealt) == Counter(fresh_deck())
        assert len(shoe) == 0

    def test_reshuffles_when_empty(self, rng):
        """Drawing from an empty shoe starts a fresh deck."""
        shoe = Shoe(rng=rng)
        for _ in range(DECK_SIZE):
            shoe.draw()

        card = shoe.draw()

        assert isinstance(card, Card)
        assert shoe.reshuffle_count == 2
        assert len(shoe) == DECK_SIZE - 1

    def test_needs_reshuffle_threshold(self, rng):
        """The shoe asks for a reshuffle below the threshold."""
        shoe = Shoe(rng=rng)
        while len(shoe) > RESHUFFLE_THRESHOLD:
            shoe.draw()
        assert not shoe.needs_reshuffle

        shoe.draw()
        assert shoe.needs_reshuffle

        shoe.reshuffle()
        assert not shoe.needs_reshuffle
        assert len(shoe) == DECK_SIZE
