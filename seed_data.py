import asyncio

from beanie import init_beanie
from pymongo import AsyncMongoClient

from accommodation.api.routes.auth import create_access_token
from accommodation.config import settings
from accommodation.models.audit import AuditLog
from accommodation.models.hotel import Hotel, HotelPrices, RoomType
from accommodation.models.request import Request
from accommodation.models.user import Region, RegionType, User, UserRole

REGIONS = [
    ("DG", "Direction Générale", RegionType.HEADQUARTERS),
    ("HMD", "Hassi Messaoud", RegionType.REGIONAL_DIRECTORATE),
    ("HRM", "Hassi R'Mel", RegionType.REGIONAL_DIRECTORATE),
    ("OHT", "Ouargla", RegionType.DIRECTORATE),
]

HOTELS = [
    dict(
        name="Hôtel El Aurassi",
        city="Alger",
        code="CTR-ALG-001",
        prices=HotelPrices(plain_stay=12000, meal_plan=14500, half_board=16000, full_board=19000),
        room_types=[RoomType(label="Single", code="SGL", base_price=12000),
                    RoomType(label="Double", code="DBL", base_price=15000)],
        provider="Direct",
    ),
    dict(
        name="Hôtel Oasis",
        city="Hassi Messaoud",
        code="CTR-HMD-014",
        prices=HotelPrices(plain_stay=7000, half_board=8000, full_board=9500),
        room_types=[RoomType(label="Standard", code="STD", base_price=7000)],
    ),
    dict(
        name="Base de Vie Ouargla",
        city="Ouargla",
        code="CTR-OHT-003",
        prices=HotelPrices(plain_stay=4500, full_board=6000),
    ),
]

USERS = [
    dict(employee_code="M10234", first_name="Amine", last_name="Benali", region_tag="HMD",
         organizational_unit="Forage", department="Production", role=UserRole.EMPLOYEE),
    dict(employee_code="M20011", first_name="Karim", last_name="Haddad", region_tag="HMD",
         organizational_unit="Forage", department="Production", role=UserRole.MANAGER),
    dict(employee_code="L30005", first_name="Nadia", last_name="Saidi", region_tag="DG",
         organizational_unit="Logistique", department="Logistique", role=UserRole.LOGISTICS),
    dict(employee_code="F40002", first_name="Yacine", last_name="Mansouri", region_tag="DG",
         organizational_unit="Comptabilité", department="Finance", role=UserRole.FINANCE),
    dict(employee_code="ADMIN001", name="System Admin", region_tag="DG", role=UserRole.ADMIN),
]


async def create_sample_data():
    """Populate database with regions, hotels and users for local development"""
    print("🚀 Starting Sample Data Generation...")

    # Initialize Beanie
    client = AsyncMongoClient(settings.MONGODB_URL)
    await init_beanie(
        database=client[settings.MONGODB_DB_NAME],
        document_models=[Request, Hotel, Region, User, AuditLog]
    )

    region_names = {}
    for code, name, region_type in REGIONS:
        region_names[code] = name
        if await Region.find_one(Region.code == code):
            print(f"⏩ Region {code} already exists, skipping...")
            continue
        await Region(code=code, name=name, type=region_type).insert()
        print(f"✅ Created Region: {code} - {name}")

    for data in HOTELS:
        if await Hotel.find_one(Hotel.code == data["code"]):
            print(f"⏩ Hotel {data['code']} already exists, skipping...")
            continue
        hotel = Hotel(**data)
        await hotel.insert()
        print(f"✅ Created Hotel: {hotel.name} ({hotel.id})")

    print("\n🔑 Bearer tokens:")
    for data in USERS:
        user = await User.find_one(User.employee_code == data["employee_code"])
        if user:
            print(f"⏩ {data['employee_code']} already exists, skipping...")
        else:
            user = User(**data, region_name=region_names.get(data["region_tag"]))
            await user.insert()
            print(f"✅ Created User: {user.display_name} ({user.role.value})")
        token = create_access_token({"sub": user.employee_code, "role": user.role.value})
        print(f"   {user.employee_code} [{user.role.value}]: {token}")

    print("\n✨ Sample data generation complete!")
    await client.close()


if __name__ == "__main__":
    asyncio.run(create_sample_data())
