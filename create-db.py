import os
from werkzeug.security import generate_password_hash
from sqlalchemy import inspect
from app import create_app
from models import db, MainUser, Product, Discount

app = create_app()

with app.app_context():
    # Admin kasir pertama
    if not db.session.query(MainUser).filter_by(username="admin").first():
        password = os.environ.get("ADMIN_PASSWORD", "admin123")
        db.session.add(MainUser(
            username="admin",
            password=generate_password_hash(password),
            name="Administrator",
            role="admin",
        ))

    # Contoh produk & promo
    if not db.session.query(Product).count():
        db.session.add(Product(name="Air Mineral 600ml", barcode="8991234567001", price=4000, stock=100))
        db.session.add(Product(name="Kopi Susu", barcode="8991234567002", price=15000, stock=50))
    if not db.session.query(Discount).count():
        db.session.add(Discount(name="Promo 10%", type="PERCENT", value=10, min_purchase=50000, is_automatic=True))
        db.session.add(Discount(name="Potongan 5rb", type="NOMINAL", value=5000, min_purchase=0))

    db.session.commit()
    print(inspect(db.engine).get_table_names())
