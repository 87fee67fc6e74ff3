from faker import Faker
from faker.providers import BaseProvider


class BuildMartProvider(BaseProvider):
    """
    BuildMart 专用数据生成器
    生成建材商品名、经销商名称和印度收货地址
    """

    # 品牌前缀
    brand_prefixes = [
        'UltraBuild', 'Shakti', 'Bharat', 'Titan', 'Sagar', 'Everest',
        'Kaveri', 'Vajra', 'Surya', 'Ganga', 'Himalaya', 'Prithvi'
    ]

    # 商品 (名称, 类别, 计量单位, 价格区间)
    product_catalog = [
        ('OPC 53 Grade Cement', 'Cement', 'bag', (320, 450)),
        ('PPC Cement', 'Cement', 'bag', (300, 400)),
        ('TMT Steel Bar 12mm', 'Steel', 'piece', (600, 900)),
        ('TMT Steel Bar 8mm', 'Steel', 'piece', (300, 500)),
        ('Red Clay Bricks', 'Bricks', '1000 pcs', (6000, 9000)),
        ('Fly Ash Bricks', 'Bricks', '1000 pcs', (4500, 7000)),
        ('River Sand', 'Sand', 'ton', (1200, 2000)),
        ('M-Sand', 'Sand', 'ton', (900, 1500)),
        ('Exterior Emulsion', 'Paint', 'litre', (250, 600)),
        ('Wall Putty', 'Paint', 'bag', (500, 900)),
        ('Vitrified Floor Tiles', 'Tiles', 'box', (700, 1600)),
        ('Ceramic Wall Tiles', 'Tiles', 'box', (400, 1100)),
    ]

    # 城市 -> 邦
    cities = [
        ('Pune', 'Maharashtra'), ('Mumbai', 'Maharashtra'), ('Bengaluru', 'Karnataka'),
        ('Chennai', 'Tamil Nadu'), ('Hyderabad', 'Telangana'), ('Jaipur', 'Rajasthan'),
        ('Ahmedabad', 'Gujarat'), ('Lucknow', 'Uttar Pradesh'), ('Kochi', 'Kerala'),
    ]

    business_suffixes = ['Traders', 'Building Materials', 'Hardware', 'Enterprises', 'Supplies', 'Depot']

    def building_product(self):
        """返回 (名称, 类别, 单位, 价格)"""
        name, category, unit, (low, high) = self.random_element(self.product_catalog)
        brand = self.random_element(self.brand_prefixes)
        price = self.random_int(min=low, max=high)
        return f'{brand} {name}', category, unit, float(price)

    def distributor_business(self):
        return f'{self.generator.last_name()} {self.random_element(self.business_suffixes)}'

    def indian_mobile(self):
        """符合 ^[6-9]\\d{9}$ 的手机号"""
        return f'{self.random_int(min=6, max=9)}{self.numerify("#########")}'

    def indian_pincode(self):
        return str(self.random_int(min=110001, max=855999))

    def city_and_state(self):
        return self.random_element(self.cities)

    def shipping_address(self, full_name=None):
        city, state = self.city_and_state()
        return {
            'full_name': full_name or self.generator.name(),
            'phone': self.indian_mobile(),
            'address': self.generator.street_address(),
            'city': city,
            'state': state,
            'pincode': self.indian_pincode(),
        }


# 初始化 Faker 并添加自定义 Provider
fake = Faker('en_IN')
fake.add_provider(BuildMartProvider)
