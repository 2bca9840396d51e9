"""Demo catalog, delivery zones and sessions loaded when SEED_DEMO_DATA=true."""

from .schemas import DeliveryZone, Neighborhood, Product, Session, SizeVariation, Topping

DEMO_TOPPINGS = [
    Topping(name="Tomates", price=100, category="Légumes", description="Tomates fraîches"),
    Topping(name="Oignons", price=100, category="Légumes", description="Oignons blancs"),
    Topping(name="Concombres", price=100, category="Légumes", description="Concombres croquants"),
    Topping(name="Sauce Ail", price=150, category="Sauces", description="Sauce à l'ail maison"),
    Topping(name="Salade", price=100, category="Légumes", description="Salade verte fraîche"),
    Topping(name="Sauce Piquante", price=150, category="Sauces", description="Sauce harissa"),
    Topping(name="Fromage", price=200, category="Fromages", description="Fromage blanc crémeux"),
    Topping(name="Houmous", price=200, category="Sauces", description="Houmous maison"),
    Topping(name="Riz Basmati", price=300, category="Autres", description="Riz basmati parfumé"),
    Topping(name="Légumes Grillés", price=250, category="Légumes", description="Légumes de saison grillés"),
]


def _sizes(*variations: tuple[str, str, int]) -> list[SizeVariation]:
    return [SizeVariation(size=size, name=name, price=price) for size, name, price in variations]


STANDARD_SIZES = (("small", "Petit", 0), ("medium", "Moyen", 500), ("large", "Grand", 1000))


def demo_products() -> list[Product]:
    t = DEMO_TOPPINGS
    return [
        Product(
            name="Shawarma Classique",
            description="Tendre agneau mariné avec légumes frais, sauce tahini et pain pita chaud",
            base_price=2000,
            size_variations=_sizes(*STANDARD_SIZES),
            category="Shawarma",
            toppings=t[:4],
        ),
        Product(
            name="Shawarma Poulet",
            description="Poulet mariné aux épices, légumes croquants et sauce blanche crémeuse",
            base_price=1800,
            size_variations=_sizes(("small", "Petit", 0), ("medium", "Moyen", 400), ("large", "Grand", 800)),
            category="Shawarma",
            toppings=t[:5],
        ),
        Product(
            name="Shawarma Végétarien",
            description="Falafel croustillant, houmous, légumes frais et sauce tahini",
            base_price=1600,
            size_variations=_sizes(("small", "Petit", 0), ("medium", "Moyen", 400), ("large", "Grand", 800)),
            category="Végétarien",
            toppings=[t[0], t[2], t[4], t[7]],
        ),
        Product(
            name="Assiette Grillades",
            description="Assortiment de viandes grillées avec riz basmati et légumes",
            base_price=3500,
            size_variations=_sizes(("normal", "Normal", 0), ("familial", "Familial", 1500)),
            category="Grillades",
            toppings=[t[8], t[9]],
        ),
        Product(
            name="Mezze Libanais",
            description="Assortiment d'entrées: houmous, moutabal, taboulé, falafel",
            base_price=2500,
            size_variations=_sizes(("small", "Petit", 0), ("large", "Grand", 1000)),
            category="Entrées",
        ),
    ]


def demo_zones() -> list[DeliveryZone]:
    # Douala is split across two zones on purpose: the neighborhood picks the fee.
    return [
        DeliveryZone(
            name="Zone Centre",
            cities=["Douala"],
            neighborhoods=[Neighborhood(name=n, city="Douala") for n in ("Akwa", "Bonapriso", "Bali")],
            delivery_fee=500,
            estimated_time=30,
        ),
        DeliveryZone(
            name="Zone Nord",
            cities=["Douala"],
            neighborhoods=[Neighborhood(name=n, city="Douala") for n in ("Bonanjo", "Deido", "Bonabéri")],
            delivery_fee=1000,
            estimated_time=45,
        ),
        DeliveryZone(
            name="Zone Yaoundé",
            cities=["Yaoundé"],
            neighborhoods=[Neighborhood(name=n, city="Yaoundé") for n in ("Bastos", "Mvog-Mbi", "Essos")],
            delivery_fee=800,
            estimated_time=40,
        ),
    ]


def demo_sessions() -> list[Session]:
    return [
        Session(user_id="admin-0001", role="admin", token="demo-admin-token"),
        Session(user_id="cust-0001", role="customer", token="demo-customer-token"),
    ]
